"""
Identity provider adapter.

The identity provider issues signed session tokens. This module is the only
place that knows the provider's claim layout; everything downstream works
with ``domain.entities.Identity``.
"""
import logging
from collections.abc import Mapping
from typing import Any

from ..domain.entities import Identity
from .token_inspection import ExpiredTokenError, InvalidTokenError, validate_session_token

logger = logging.getLogger(__name__)


def _role_claims(metadata: Any) -> tuple[str, ...]:
    if not isinstance(metadata, Mapping):
        return ()
    claims: list[str] = []
    single = metadata.get("role")
    if isinstance(single, str) and single.strip():
        claims.append(single.strip().lower())
    many = metadata.get("roles")
    if isinstance(many, (list, tuple)):
        for value in many:
            if isinstance(value, str) and value.strip():
                name = value.strip().lower()
                if name not in claims:
                    claims.append(name)
    return tuple(claims)


def identity_from_claims(claims: Mapping[str, Any]) -> Identity | None:
    """Translate provider claims into an Identity; None without a subject."""
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        return None

    email = claims.get("email") or claims.get("primary_email")
    if not isinstance(email, str) or not email.strip():
        email = None

    return Identity(
        id=subject.strip(),
        email=email.strip() if email else None,
        raw_role_claims=_role_claims(claims.get("public_metadata")),
    )


class JwtIdentityProvider:
    """IdentityProvider for one request's bearer token.

    Missing, expired and invalid tokens all resolve to None.
    """

    def __init__(
        self,
        token: str | None,
        *,
        key: str,
        algorithm: str,
        audience: str | None = None,
    ):
        self._token = token
        self._key = key
        self._algorithm = algorithm
        self._audience = audience

    async def current_identity(self) -> Identity | None:
        if not self._token:
            return None
        try:
            payload = validate_session_token(
                self._token, self._key, self._algorithm, self._audience
            )
        except ExpiredTokenError:
            logger.info("identity_token_expired")
            return None
        except InvalidTokenError:
            logger.info("identity_token_invalid")
            return None
        return identity_from_claims(payload)

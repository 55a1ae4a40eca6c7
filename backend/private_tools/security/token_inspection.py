from typing import Any, Dict

import jwt


class InvalidTokenError(Exception):
    """Raised when a token cannot be parsed or is malformed."""


class ExpiredTokenError(Exception):
    """Raised when a token has expired."""


def _parse_token_payload(
    token: str,
    key: str,
    algorithm: str,
    audience: str | None = None,
) -> Dict[str, Any]:
    options = {"verify_aud": audience is not None}
    try:
        return jwt.decode(
            token,
            key,
            algorithms=[algorithm],
            audience=audience,
            options=options,
        )
    except jwt.ExpiredSignatureError as exc:
        raise ExpiredTokenError from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError from exc


def validate_session_token(
    token: str,
    key: str,
    algorithm: str,
    audience: str | None = None,
) -> Dict[str, Any]:
    if not token or not isinstance(token, str):
        raise InvalidTokenError()

    payload = _parse_token_payload(token, key, algorithm, audience)

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise InvalidTokenError()

    return payload

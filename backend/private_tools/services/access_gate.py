"""
Access gate - the single enforcement point for route access.

Evaluation order:
1. Unauthenticated -> denied, not audited
2. Superadmin -> allowed, no level comparison
3. Effective level >= required -> allowed
4. Otherwise denied and audited (best-effort, after the decision is final)
"""
import logging
from dataclasses import dataclass

from ..domain.entities import AuditWriteResult, SessionInfo
from ..errors import AuthError, PermissionError
from ..rbac import contract
from ..rbac.levels import PermissionLevel, normalize_level
from ..rbac.routes import normalize_route_key
from .audit.audit_service import AuditService
from .session_service import SessionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    route: str
    required: PermissionLevel
    session: SessionInfo
    reason: str | None = None
    audit: AuditWriteResult | None = None


class AccessGate:
    """Per-request gate; the session is resolved once and reused."""

    def __init__(self, sessions: SessionService, audit: AuditService):
        self.sessions = sessions
        self.audit = audit
        self._session: SessionInfo | None = None

    async def resolve_session(self) -> SessionInfo:
        if self._session is None:
            self._session = await self.sessions.resolve_session()
        return self._session

    async def authorize(
        self,
        session: SessionInfo,
        route_key: str,
        required: PermissionLevel = PermissionLevel.READ,
    ) -> GateDecision:
        route = normalize_route_key(route_key)
        required = normalize_level(required)

        if not session.signed_in:
            return GateDecision(
                allowed=False,
                route=route,
                required=required,
                session=session,
                reason=contract.REASON_UNAUTHENTICATED,
            )

        if session.is_superadmin:
            return GateDecision(allowed=True, route=route, required=required, session=session)

        actual = session.level_for(route)
        if actual >= required:
            return GateDecision(allowed=True, route=route, required=required, session=session)

        logger.info(
            "access_denied route=%s required=%s actual=%s user=%s",
            route,
            required.label,
            actual.label,
            session.user_id,
        )
        audit_result = await self.audit.log_access_denied(session, route, required, actual)
        return GateDecision(
            allowed=False,
            route=route,
            required=required,
            session=session,
            reason=contract.REASON_INSUFFICIENT_ROLE,
            audit=audit_result,
        )

    async def evaluate(
        self,
        route_key: str,
        required: PermissionLevel = PermissionLevel.READ,
    ) -> GateDecision:
        session = await self.resolve_session()
        return await self.authorize(session, route_key, required)

    async def require(
        self,
        route_key: str,
        required: PermissionLevel = PermissionLevel.READ,
    ) -> SessionInfo:
        """
        Raises:
            AuthError: If no identity is signed in
            PermissionError: If the effective level is below ``required``
        """
        decision = await self.evaluate(route_key, required)
        if decision.allowed:
            return decision.session
        if decision.reason == contract.REASON_UNAUTHENTICATED:
            raise AuthError()
        raise PermissionError(details={"route": decision.route})

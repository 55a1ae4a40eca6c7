import logging
from collections.abc import Iterable
from typing import Any

from ...domain.entities import AuditEvent, AuditWriteResult, SessionInfo
from ...domain.ports.audit import AuditSink
from ...rbac import contract
from ...rbac.levels import PermissionLevel, describe_level

logger = logging.getLogger(__name__)


class AuditService:
    """Best-effort writer of audit events.

    A failed write is logged and reported through AuditWriteResult; it never
    raises into the operation that triggered it.
    """

    def __init__(self, sink: AuditSink):
        self.sink = sink

    async def record(self, event: AuditEvent) -> AuditWriteResult:
        try:
            contract.validate_audit_action(event.action)
            await self.sink.append(event)
        except Exception as exc:
            logger.error(
                "audit_write_failed action=%s target=%s",
                event.action,
                event.target,
                exc_info=True,
            )
            return AuditWriteResult(written=False, error=str(exc) or type(exc).__name__)
        return AuditWriteResult(written=True)

    async def log_access_denied(
        self,
        session: SessionInfo,
        route_key: str,
        required: PermissionLevel,
        actual: PermissionLevel,
    ) -> AuditWriteResult:
        return await self.record(
            AuditEvent(
                action=contract.AUDIT_ACTION_ACCESS_DENIED,
                actor_user_id=session.user_id,
                actor_email=session.email,
                target=route_key,
                detail={
                    "reason": contract.REASON_INSUFFICIENT_ROLE,
                    "required": describe_level(required),
                    "actual": describe_level(actual),
                    "roles": session.role_names,
                },
            )
        )

    async def log_refusal(
        self,
        session: SessionInfo,
        target: str,
        reason: str,
        **detail: Any,
    ) -> AuditWriteResult:
        """Administration refusal, recorded as access_denied with its reason code."""
        return await self.record(
            AuditEvent(
                action=contract.AUDIT_ACTION_ACCESS_DENIED,
                actor_user_id=session.user_id,
                actor_email=session.email,
                target=target,
                detail={"reason": reason, **detail},
            )
        )

    async def log_role_change(
        self,
        session: SessionInfo,
        identity_id: str,
        *,
        previous: Iterable[str],
        current: Iterable[str],
    ) -> AuditWriteResult:
        before = sorted(previous)
        after = sorted(current)
        return await self.record(
            AuditEvent(
                action=contract.AUDIT_ACTION_ROLE_CHANGE,
                actor_user_id=session.user_id,
                actor_email=session.email,
                target=identity_id,
                detail={
                    "added": [name for name in after if name not in before],
                    "removed": [name for name in before if name not in after],
                    "from": before,
                    "to": after,
                    "identity": identity_id,
                },
            )
        )

    async def log_security_event(
        self,
        session: SessionInfo,
        target: str,
        event: str,
        **detail: Any,
    ) -> AuditWriteResult:
        return await self.record(
            AuditEvent(
                action=contract.AUDIT_ACTION_SECURITY_EVENT,
                actor_user_id=session.user_id,
                actor_email=session.email,
                target=target,
                detail={"event": event, **detail},
            )
        )

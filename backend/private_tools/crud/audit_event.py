from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import AsyncSessionLocal
from ..domain.entities import AuditEvent as AuditEventEntity
from ..models.audit_event import AuditEvent


class AuditEventRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, event: AuditEventEntity) -> AuditEvent:
        row = AuditEvent(
            ts=event.ts,
            action=event.action,
            actor_user_id=event.actor_user_id,
            actor_email=event.actor_email,
            target=event.target,
            detail=event.detail,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def list_recent(
        self,
        limit: int = 50,
        offset: int = 0,
        action: str | None = None,
    ) -> list[AuditEvent]:
        query = select(AuditEvent)
        if action is not None:
            query = query.where(AuditEvent.action == action)
        query = query.order_by(AuditEvent.ts.desc(), AuditEvent.id.desc()).limit(limit).offset(offset)
        result = await self.session.execute(query)
        return list(result.scalars().all())


class IsolatedAuditSink:
    """AuditSink writing every event in its own session and transaction.

    An audit record survives a rollback of the request's main transaction,
    and a failed audit write never poisons it.
    """

    def __init__(self, session_factory=AsyncSessionLocal):
        self._session_factory = session_factory

    async def append(self, event: AuditEventEntity) -> None:
        async with self._session_factory() as audit_session:
            await AuditEventRepository(audit_session).create(event)
            await audit_session.commit()

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, JSON, DateTime, Identity, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, validates

from ..rbac import contract
from .base import Base


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(
        BigInteger, Identity(always=True), primary_key=True
    )
    ts: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    action: Mapped[str] = mapped_column(
        String(50), nullable=False, index=True
    )  # access_denied | role_change | security_event
    actor_user_id: Mapped[str | None] = mapped_column(String(255), index=True)
    actor_email: Mapped[str | None] = mapped_column(String(320))
    target: Mapped[str | None] = mapped_column(Text)  # route key or identity id
    detail: Mapped[dict | None] = mapped_column(JSON)

    __table_args__ = (
        CheckConstraint(
            "action IN ('access_denied', 'role_change', 'security_event')",
            name="valid_audit_action",
        ),
    )

    @validates("action")
    def validate_action(self, key: str, value: str) -> str:
        contract.validate_audit_action(value)
        return value

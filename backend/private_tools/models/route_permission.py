from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Identity,
    SmallInteger,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from ..rbac.levels import PermissionLevel
from ..rbac.routes import normalize_route_key
from .base import Base

if TYPE_CHECKING:
    from .role import Role


class RoutePermission(Base):
    """Explicit grant of a level on a route key to a role.

    Level 0 (None) is never stored; absence of a row means no access.
    """

    __tablename__ = "route_permissions"

    id: Mapped[int] = mapped_column(
        BigInteger, Identity(always=True), primary_key=True
    )
    role_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    route: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    level: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("role_id", "route", name="uq_route_permissions_role_id_route"),
        CheckConstraint("level BETWEEN 1 AND 3", name="valid_route_permission_level"),
    )

    role: Mapped["Role"] = relationship("Role", back_populates="route_permissions")

    @validates("route")
    def validate_route(self, key: str, value: str) -> str:
        route = normalize_route_key(value)
        if not route:
            raise ValueError("Route key must not be empty")
        return route

    @validates("level")
    def validate_level(self, key: str, value: int) -> int:
        if not PermissionLevel.READ <= int(value) <= PermissionLevel.ADMIN:
            raise ValueError(f"Invalid stored level {value!r}; expected 1..3")
        return int(value)

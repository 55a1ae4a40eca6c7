from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..rbac.levels import PermissionLevel
from ..rbac.routes import normalize_route_key


@dataclass(frozen=True)
class Identity:
    """Authenticated principal as reported by the identity provider."""

    id: str
    email: str | None = None
    raw_role_claims: tuple[str, ...] = ()


@dataclass(frozen=True)
class SessionRole:
    id: int
    name: str
    label: str
    rank: int = 0
    is_superadmin: bool = False

    @classmethod
    def from_row(cls, row: Any) -> "SessionRole":
        return cls(
            id=int(row.id),
            name=str(row.name),
            label=str(row.label or row.name),
            rank=int(row.rank or 0),
            is_superadmin=bool(row.is_superadmin),
        )


@dataclass(frozen=True)
class Grant:
    role_id: int
    route: str
    level: PermissionLevel


@dataclass
class SessionInfo:
    signed_in: bool
    user_id: str | None = None
    email: str | None = None
    roles: list[SessionRole] = field(default_factory=list)
    primary_role: SessionRole | None = None
    is_superadmin: bool = False
    permissions: dict[str, PermissionLevel] = field(default_factory=dict)

    @classmethod
    def anonymous(cls) -> "SessionInfo":
        return cls(signed_in=False)

    @property
    def role_names(self) -> list[str]:
        return [role.name for role in self.roles]

    def level_for(self, route_key: str) -> PermissionLevel:
        return self.permissions.get(normalize_route_key(route_key), PermissionLevel.NONE)


@dataclass(frozen=True)
class AuditEvent:
    action: str
    actor_user_id: str | None
    actor_email: str | None = None
    target: str | None = None
    detail: dict[str, Any] | None = None
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class AuditWriteResult:
    written: bool
    error: str | None = None


@dataclass(frozen=True)
class MutationResult:
    """Outcome of an administration mutation; ``applied`` is False when nothing was written."""

    applied: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> "MutationResult":
        return cls(applied=True)

    @classmethod
    def refused(cls, reason: str) -> "MutationResult":
        return cls(applied=False, reason=reason)

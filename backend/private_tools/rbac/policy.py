from __future__ import annotations

from dataclasses import dataclass

from ..config import Settings


@dataclass(frozen=True)
class RbacPolicy:
    """Names and routes the access-control services are parameterized with."""

    protected_role_name: str = "superadmin"
    default_role_name: str = "member"
    permissions_admin_route: str = "admin/settings"
    users_admin_route: str = "admin/users"
    audit_route: str = "activity"

    @property
    def protected_role_names(self) -> frozenset[str]:
        return frozenset({self.protected_role_name})

    def is_protected(self, role_name: str) -> bool:
        return role_name.strip().lower() in self.protected_role_names

    @classmethod
    def from_settings(cls, settings: Settings) -> "RbacPolicy":
        return cls(
            protected_role_name=settings.protected_role_name,
            default_role_name=settings.default_role_name,
            permissions_admin_route=settings.permissions_admin_route,
            users_admin_route=settings.users_admin_route,
            audit_route=settings.audit_route,
        )

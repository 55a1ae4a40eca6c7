from dataclasses import dataclass, field
from typing import Any

from ...domain.entities import SessionRole
from ...domain.ports.audit import AuditLog
from ...domain.ports.rbac import GrantStore, RoleStore
from ...rbac.levels import PermissionLevel, normalize_level
from ...rbac.policy import RbacPolicy
from ...rbac.routes import ROUTE_DESCRIPTORS, get_descriptor, normalize_route_key
from ..access_gate import AccessGate


@dataclass
class OverviewRoute:
    route: str
    label: str
    description: str = ""
    default_level: PermissionLevel = PermissionLevel.NONE
    is_custom: bool = False
    levels: dict[str, PermissionLevel] = field(default_factory=dict)
    explicit: set[str] = field(default_factory=set)


@dataclass
class PermissionOverview:
    roles: list[SessionRole]
    routes: list[OverviewRoute]

    @property
    def matrix(self) -> dict[str, dict[str, PermissionLevel]]:
        return {row.route: dict(row.levels) for row in self.routes}


class AdminOverviewService:
    """Read side of the administration console."""

    def __init__(
        self,
        gate: AccessGate,
        roles: RoleStore,
        grants: GrantStore,
        audit_log: AuditLog,
        policy: RbacPolicy,
    ):
        self.gate = gate
        self.roles = roles
        self.grants = grants
        self.audit_log = audit_log
        self.policy = policy

    async def get_permission_overview(self) -> PermissionOverview:
        """
        Roles ordered by rank and a route -> role name -> level matrix.

        Cells without an explicit grant show the descriptor default. The
        defaults are for display only and are never granted by the resolver.

        Raises:
            AuthError: If no identity is signed in
            PermissionError: Below READ on the permissions administration route
        """
        await self.gate.require(self.policy.permissions_admin_route, PermissionLevel.READ)

        roles = sorted(
            (SessionRole.from_row(row) for row in await self.roles.list_roles()),
            key=lambda role: (role.rank, role.name),
        )
        names_by_id = {role.id: role.name for role in roles}

        rows: dict[str, OverviewRoute] = {
            descriptor.route: OverviewRoute(
                route=descriptor.route,
                label=descriptor.label,
                description=descriptor.description,
                default_level=descriptor.default_level,
            )
            for descriptor in ROUTE_DESCRIPTORS
        }

        for grant in await self.grants.list_grants():
            role_name = names_by_id.get(grant.role_id)
            route = normalize_route_key(grant.route)
            if role_name is None or not route:
                continue
            row = rows.get(route)
            if row is None:
                descriptor = get_descriptor(route)
                row = rows[route] = OverviewRoute(
                    route=route,
                    label=descriptor.label if descriptor else route,
                    is_custom=descriptor is None,
                )
            level = normalize_level(grant.level)
            if level >= row.levels.get(role_name, PermissionLevel.NONE):
                row.levels[role_name] = level
            row.explicit.add(role_name)

        for row in rows.values():
            for role in roles:
                row.levels.setdefault(role.name, row.default_level)

        return PermissionOverview(roles=roles, routes=list(rows.values()))

    async def list_identity_roles(self, identity_id: str) -> list[SessionRole]:
        """
        Roles currently held by ``identity_id``, ordered by rank.

        Raises:
            AuthError: If no identity is signed in
            PermissionError: Below READ on the users administration route
        """
        await self.gate.require(self.policy.users_admin_route, PermissionLevel.READ)

        catalog = {role.id: SessionRole.from_row(role) for role in await self.roles.list_roles()}
        held_ids = await self.roles.list_role_memberships(identity_id.strip())
        held = [catalog[role_id] for role_id in dict.fromkeys(held_ids) if role_id in catalog]
        return sorted(held, key=lambda role: (role.rank, role.name))

    async def list_audit_events(
        self,
        limit: int = 50,
        offset: int = 0,
        action: str | None = None,
    ) -> list[Any]:
        """
        Raises:
            AuthError: If no identity is signed in
            PermissionError: Below READ on the audit route
        """
        await self.gate.require(self.policy.audit_route, PermissionLevel.READ)
        limit = max(1, min(int(limit), 500))
        offset = max(0, int(offset))
        return list(await self.audit_log.list_recent(limit=limit, offset=offset, action=action))

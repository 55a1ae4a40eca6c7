"""
Effective permission resolution.

Pure functions over already-loaded rows; no storage or network access here.
Grants are additive: the effective level of a route is the maximum over all
held roles, never an intersection.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from ..domain.entities import SessionRole
from ..domain.ports.rbac import GrantData
from ..rbac.levels import PermissionLevel, normalize_level
from ..rbac.routes import normalize_route_key


@dataclass(frozen=True)
class EffectivePermissions:
    levels: dict[str, PermissionLevel] = field(default_factory=dict)
    is_superadmin: bool = False

    def level_for(self, route_key: str) -> PermissionLevel:
        return self.levels.get(normalize_route_key(route_key), PermissionLevel.NONE)


def resolve_effective_permissions(
    roles: Sequence[SessionRole],
    grants: Iterable[GrantData],
) -> EffectivePermissions:
    """Aggregate grants of the held roles into a route -> level map.

    Grants of roles not held are ignored. Duplicate (role, route) rows are
    tolerated by taking the max. Routes whose best level is NONE are omitted,
    so absence and an explicit NONE row resolve identically.
    """
    held_ids = {role.id for role in roles}
    levels: dict[str, PermissionLevel] = {}

    for grant in grants:
        if grant.role_id not in held_ids:
            continue
        route = normalize_route_key(grant.route)
        if not route:
            continue
        level = normalize_level(grant.level)
        if level == PermissionLevel.NONE:
            continue
        if level > levels.get(route, PermissionLevel.NONE):
            levels[route] = level

    return EffectivePermissions(
        levels=levels,
        is_superadmin=any(role.is_superadmin for role in roles),
    )


def pick_primary_role(roles: Sequence[SessionRole]) -> SessionRole | None:
    """Highest-ranked held role; informational only."""
    primary: SessionRole | None = None
    for role in roles:
        if primary is None or role.rank > primary.rank:
            primary = role
    return primary

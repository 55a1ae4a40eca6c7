"""
RBAC contract - fixed vocabulary of the access-control subsystem.

Defines:
- audit action kinds and denial reason codes
- the seed roles and their default grants
- fail-fast validation of the seed data at import time

Runtime decisions MUST go through services.permission_resolver and
services.access_gate, never through the seed mappings below.
"""
from __future__ import annotations

from typing import Final

from .levels import PermissionLevel
from .routes import DESCRIPTORS_BY_ROUTE, ROUTE_DESCRIPTORS, normalize_route_key


# ============================================================================
# AUDIT VOCABULARY
# ============================================================================

AUDIT_ACTION_ACCESS_DENIED: Final = "access_denied"
AUDIT_ACTION_ROLE_CHANGE: Final = "role_change"
AUDIT_ACTION_SECURITY_EVENT: Final = "security_event"

AUDIT_ACTIONS: Final[frozenset[str]] = frozenset({
    AUDIT_ACTION_ACCESS_DENIED,
    AUDIT_ACTION_ROLE_CHANGE,
    AUDIT_ACTION_SECURITY_EVENT,
})

# Denial outcomes of the access gate
REASON_UNAUTHENTICATED: Final = "unauthenticated"
REASON_INSUFFICIENT_ROLE: Final = "insufficient_role"

# Role administration refusals
REASON_ROLE_CHANGE_REQUIRES_SUPERADMIN: Final = "role_change_requires_superadmin"
REASON_CANNOT_DEMOTE_SUPERADMIN: Final = "cannot_demote_superadmin"
REASON_SUPERADMIN_FLAG_REQUIRES_SUPERADMIN: Final = "superadmin_flag_requires_superadmin"
REASON_PROTECTED_ROLE: Final = "protected_role"
REASON_INVALID_INPUT: Final = "invalid_input"
REASON_NOT_FOUND: Final = "not_found"
REASON_STORAGE_ERROR: Final = "storage_error"


def validate_audit_action(action: str) -> None:
    """
    Raises:
        ValueError: If action is not one of AUDIT_ACTIONS
    """
    if action not in AUDIT_ACTIONS:
        raise ValueError(
            f"Invalid audit action '{action}'. "
            f"Must be one of: {', '.join(sorted(AUDIT_ACTIONS))}"
        )


# ============================================================================
# SEED DATA (used by scripts/seed_rbac.py only)
# ============================================================================

DEFAULT_ROLES: Final[tuple[dict[str, object], ...]] = (
    {"name": "member", "label": "Member", "rank": 0, "is_superadmin": False},
    {"name": "admin", "label": "Admin", "rank": 50, "is_superadmin": False},
    {"name": "superadmin", "label": "Superadmin", "rank": 100, "is_superadmin": True},
)

# Explicit grants written by the seed script. The superadmin role needs none.
DEFAULT_ROLE_GRANTS: Final[dict[str, dict[str, PermissionLevel]]] = {
    "member": {
        descriptor.route: descriptor.default_level
        for descriptor in ROUTE_DESCRIPTORS
        if descriptor.default_level > PermissionLevel.NONE
    },
    "admin": {
        **{descriptor.route: PermissionLevel.WRITE for descriptor in ROUTE_DESCRIPTORS},
        "admin": PermissionLevel.ADMIN,
        "admin/users": PermissionLevel.READ,
        "admin/settings": PermissionLevel.ADMIN,
        "activity": PermissionLevel.READ,
    },
    "superadmin": {},
}


def _validate_contract() -> None:
    """Validate the seed data at module import time."""
    errors = []
    role_names = {str(role["name"]) for role in DEFAULT_ROLES}

    if sum(1 for role in DEFAULT_ROLES if role["is_superadmin"]) != 1:
        errors.append("Exactly one seed role must carry the superadmin flag")

    for descriptor in ROUTE_DESCRIPTORS:
        if normalize_route_key(descriptor.route) != descriptor.route:
            errors.append(f"Route descriptor '{descriptor.route}' is not normalized")

    for role_name, grants in DEFAULT_ROLE_GRANTS.items():
        if role_name not in role_names:
            errors.append(f"Grants declared for unknown role '{role_name}'")
            continue
        for route, level in grants.items():
            if route not in DESCRIPTORS_BY_ROUTE:
                errors.append(f"Role '{role_name}' has grant for undeclared route '{route}'")
            if level == PermissionLevel.NONE:
                errors.append(
                    f"Role '{role_name}' declares a NONE grant for '{route}'; omit the row instead"
                )

    if errors:
        raise RuntimeError(
            "RBAC contract validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )


_validate_contract()

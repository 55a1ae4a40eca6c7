from private_tools.domain.entities import Grant, SessionRole
from private_tools.rbac.levels import PermissionLevel
from private_tools.services.permission_resolver import (
    pick_primary_role,
    resolve_effective_permissions,
)

MEMBER = SessionRole(id=1, name="member", label="Member", rank=0)
EDITOR = SessionRole(id=2, name="editor", label="Editor", rank=20)
SUPER = SessionRole(id=3, name="superadmin", label="Superadmin", rank=100, is_superadmin=True)


def test_max_over_roles():
    grants = [
        Grant(MEMBER.id, "tools/files", PermissionLevel.READ),
        Grant(EDITOR.id, "tools/files", PermissionLevel.ADMIN),
    ]

    effective = resolve_effective_permissions([MEMBER, EDITOR], grants)

    assert effective.level_for("tools/files") == PermissionLevel.ADMIN
    assert effective.is_superadmin is False


def test_grants_of_roles_not_held_are_ignored():
    grants = [
        Grant(MEMBER.id, "tools/files", PermissionLevel.READ),
        Grant(EDITOR.id, "tools/journal", PermissionLevel.WRITE),
    ]

    effective = resolve_effective_permissions([MEMBER], grants)

    assert effective.levels == {"tools/files": PermissionLevel.READ}


def test_none_grant_equals_absent_grant():
    with_none_row = resolve_effective_permissions(
        [MEMBER], [Grant(MEMBER.id, "tools/files", PermissionLevel.NONE)]
    )
    without_row = resolve_effective_permissions([MEMBER], [])

    assert with_none_row.level_for("tools/files") == PermissionLevel.NONE
    assert with_none_row.levels == without_row.levels == {}


def test_duplicate_rows_take_max():
    grants = [
        Grant(MEMBER.id, "tools/files", PermissionLevel.WRITE),
        Grant(MEMBER.id, "tools/files", PermissionLevel.READ),
    ]

    effective = resolve_effective_permissions([MEMBER], grants)

    assert effective.level_for("tools/files") == PermissionLevel.WRITE


def test_route_keys_are_normalized():
    grants = [Grant(MEMBER.id, "//tools//files", PermissionLevel.READ)]

    effective = resolve_effective_permissions([MEMBER], grants)

    assert effective.levels == {"tools/files": PermissionLevel.READ}
    assert effective.level_for("/tools/files") == PermissionLevel.READ


def test_stored_levels_out_of_range_are_clamped():
    grants = [Grant(MEMBER.id, "tools/files", 9)]  # type: ignore[arg-type]

    effective = resolve_effective_permissions([MEMBER], grants)

    assert effective.level_for("tools/files") == PermissionLevel.ADMIN


def test_superadmin_flag_from_any_role():
    effective = resolve_effective_permissions([MEMBER, SUPER], [])

    assert effective.is_superadmin is True
    # Superadmin is a flag, not a synthesized grant
    assert effective.levels == {}


def test_no_defaults_are_granted():
    # tools/files has a Read descriptor default, but no grant exists
    effective = resolve_effective_permissions([MEMBER], [])

    assert effective.level_for("tools/files") == PermissionLevel.NONE


def test_primary_role_is_highest_rank():
    assert pick_primary_role([MEMBER, SUPER, EDITOR]) == SUPER
    assert pick_primary_role([]) is None

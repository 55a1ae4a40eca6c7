import pytest

from private_tools.domain.invariants import (
    InvariantViolation,
    enforce_protected_superadmin_flag,
    validate_role_change,
    validate_role_deletable,
    validate_superadmin_flag_change,
)
from private_tools.errors import ForbiddenRoleChange
from private_tools.models.route_permission import RoutePermission

PROTECTED = ("superadmin",)


def test_protected_flag_is_forced_true():
    assert enforce_protected_superadmin_flag("superadmin", False, PROTECTED) is True
    assert enforce_protected_superadmin_flag("superadmin", True, PROTECTED) is True


def test_unprotected_flag_passes_through():
    assert enforce_protected_superadmin_flag("editor", False, PROTECTED) is False
    assert enforce_protected_superadmin_flag("editor", True, PROTECTED) is True


def test_protected_role_is_not_deletable():
    with pytest.raises(InvariantViolation) as exc_info:
        validate_role_deletable("superadmin", PROTECTED, role_id=1)

    assert exc_info.value.reason == "protected_role"
    assert exc_info.value.details["role_id"] == "1"


def test_regular_role_is_deletable():
    validate_role_deletable("editor", PROTECTED, role_id=7)


def test_flag_change_requires_superadmin_actor():
    with pytest.raises(InvariantViolation) as exc_info:
        validate_superadmin_flag_change(False, False, True, role_name="editor")

    assert exc_info.value.reason == "superadmin_flag_requires_superadmin"


def test_unchanged_flag_is_allowed_for_any_actor():
    validate_superadmin_flag_change(False, True, True, role_name="editor")
    validate_superadmin_flag_change(True, False, True, role_name="editor")


def test_role_change_by_non_superadmin_is_forbidden():
    with pytest.raises(ForbiddenRoleChange) as exc_info:
        validate_role_change(False, False, False, target_id="user_2", attempted_roles=["admin"])

    assert exc_info.value.reason == "role_change_requires_superadmin"
    assert exc_info.value.details == {"identity": "user_2", "attempted_roles": ["admin"]}


def test_superadmin_demotion_is_forbidden_even_for_superadmins():
    with pytest.raises(ForbiddenRoleChange) as exc_info:
        validate_role_change(True, True, False, target_id="root_2", attempted_roles=["member"])

    assert exc_info.value.reason == "cannot_demote_superadmin"


def test_superadmin_may_keep_superadmin_target():
    validate_role_change(True, True, True, target_id="root_2", attempted_roles=["superadmin", "member"])


def test_grant_row_normalizes_route():
    grant = RoutePermission(role_id=1, route="//tools//files", level=2)

    assert grant.route == "tools/files"
    assert grant.level == 2


@pytest.mark.parametrize("level", [0, 4])
def test_grant_row_rejects_unstorable_levels(level):
    with pytest.raises(ValueError):
        RoutePermission(role_id=1, route="tools/files", level=level)


def test_grant_row_rejects_empty_route():
    with pytest.raises(ValueError):
        RoutePermission(role_id=1, route="///", level=1)

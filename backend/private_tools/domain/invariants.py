"""
Role administration invariants.

All checks run BEFORE any storage write.

INVARIANTS:
1. Protected role - the reserved role keeps its superadmin flag and is never deleted
2. Superadmin-only role changes - only superadmins change role memberships
3. No superadmin demotion - a superadmin never loses superadmin membership
4. Superadmin flag - only superadmins grant or revoke the flag on other roles
"""

import logging
from collections.abc import Iterable
from typing import Any

from ..errors import ForbiddenRoleChange
from ..rbac import contract

logger = logging.getLogger(__name__)


class InvariantViolation(Exception):
    """
    Raised when a role administration invariant is violated.

    Services convert it into a refused mutation; it never reaches page rendering.
    """

    def __init__(self, message: str, *, invariant: str, reason: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.invariant = invariant
        self.reason = reason
        self.details = details or {}

        logger.warning(
            "invariant_violation invariant=%s message=%s details=%s",
            invariant,
            message,
            details,
        )


def enforce_protected_superadmin_flag(
    role_name: str,
    requested_flag: bool,
    protected_names: Iterable[str],
) -> bool:
    """
    INVARIANT-1: The protected role's superadmin flag is forced to stay true.

    Returns:
        bool: The flag value that may be stored
    """
    if role_name in set(protected_names):
        if not requested_flag:
            log_invariant_skip(
                "INVARIANT-1.protected_flag",
                "flag_forced_true",
                role=role_name,
            )
        return True
    return requested_flag


def validate_role_deletable(role_name: str, protected_names: Iterable[str], *, role_id: Any) -> None:
    """
    INVARIANT-1: The protected role can never be deleted.

    Raises:
        InvariantViolation: If role_name is protected
    """
    if role_name in set(protected_names):
        raise InvariantViolation(
            f"Role '{role_name}' is protected and cannot be deleted",
            invariant="INVARIANT-1.protected_delete",
            reason=contract.REASON_PROTECTED_ROLE,
            details={"role_id": str(role_id), "role": role_name},
        )


def validate_superadmin_flag_change(
    actor_is_superadmin: bool,
    current_flag: bool,
    requested_flag: bool,
    *,
    role_name: str,
) -> None:
    """
    INVARIANT-4: Granting or revoking the superadmin flag needs a superadmin actor.

    Raises:
        InvariantViolation: If a non-superadmin actor changes the flag
    """
    if actor_is_superadmin or current_flag == requested_flag:
        return
    raise InvariantViolation(
        f"Changing the superadmin flag of role '{role_name}' requires a superadmin",
        invariant="INVARIANT-4.superadmin_flag",
        reason=contract.REASON_SUPERADMIN_FLAG_REQUIRES_SUPERADMIN,
        details={"role": role_name, "requested": requested_flag},
    )


def validate_role_change(
    actor_is_superadmin: bool,
    target_is_superadmin: bool,
    desired_is_superadmin: bool,
    *,
    target_id: str,
    attempted_roles: list[str],
) -> None:
    """
    INVARIANT-2 and INVARIANT-3: membership changes by superadmins only, and
    never away from superadmin.

    Raises:
        ForbiddenRoleChange: With the reason code distinguishing both rules
    """
    details = {"identity": target_id, "attempted_roles": attempted_roles}
    if not actor_is_superadmin:
        raise ForbiddenRoleChange(contract.REASON_ROLE_CHANGE_REQUIRES_SUPERADMIN, details=details)
    if target_is_superadmin and not desired_is_superadmin:
        raise ForbiddenRoleChange(contract.REASON_CANNOT_DEMOTE_SUPERADMIN, details=details)


def log_invariant_skip(
    invariant: str,
    reason: str,
    **kwargs: Any,
) -> None:
    logger.info(
        "invariant_skip invariant=%s reason=%s %s",
        invariant,
        reason,
        " ".join(f"{k}={v}" for k, v in kwargs.items()),
    )

"""
Role and permission administration.

Every mutation is gated at ADMIN on the permissions administration route
(membership changes: on the users administration route) and returns a
MutationResult. Refusals and storage failures never raise to the caller.
"""
import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from ...domain.entities import MutationResult, SessionInfo, SessionRole
from ...domain.invariants import (
    InvariantViolation,
    enforce_protected_superadmin_flag,
    log_invariant_skip,
    validate_role_change,
    validate_role_deletable,
    validate_superadmin_flag_change,
)
from ...domain.ports.rbac import GrantStore, RoleStore
from ...errors import ForbiddenRoleChange
from ...rbac import contract
from ...rbac.levels import PermissionLevel, parse_level
from ...rbac.policy import RbacPolicy
from ...rbac.routes import normalize_route_key
from ..access_gate import AccessGate
from ..audit.audit_service import AuditService

logger = logging.getLogger(__name__)


def _coerce_rank(raw: Any) -> int:
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, str):
        try:
            raw = float(raw.strip())
        except ValueError:
            return 0
    if isinstance(raw, (int, float)) and math.isfinite(raw):
        return int(raw)
    return 0


def _coerce_flag(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "on", "yes"}
    return bool(raw)


def _coerce_role_id(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return None


class RoleAdminService:
    def __init__(
        self,
        gate: AccessGate,
        roles: RoleStore,
        grants: GrantStore,
        audit: AuditService,
        policy: RbacPolicy,
    ):
        self.gate = gate
        self.roles = roles
        self.grants = grants
        self.audit = audit
        self.policy = policy

    async def _authorize(self, route_key: str) -> tuple[SessionInfo, MutationResult | None]:
        decision = await self.gate.evaluate(route_key, PermissionLevel.ADMIN)
        if not decision.allowed:
            return decision.session, MutationResult.refused(decision.reason or contract.REASON_INSUFFICIENT_ROLE)
        return decision.session, None

    async def _refuse(
        self,
        session: SessionInfo,
        target: str,
        reason: str,
        **detail: Any,
    ) -> MutationResult:
        await self.audit.log_refusal(session, target, reason, **detail)
        return MutationResult.refused(reason)

    async def _storage_failed(self, operation: str) -> MutationResult:
        logger.exception("role_admin_storage_failed operation=%s", operation)
        stores = [self.roles] if self.grants is self.roles else [self.roles, self.grants]
        for store in stores:
            try:
                await store.rollback()
            except Exception:
                logger.exception("role_admin_rollback_failed operation=%s", operation)
        return MutationResult.refused(contract.REASON_STORAGE_ERROR)

    async def create_role(
        self,
        *,
        name: Any,
        label: Any,
        rank: Any = 0,
        is_superadmin: Any = False,
    ) -> MutationResult:
        session, refused = await self._authorize(self.policy.permissions_admin_route)
        if refused:
            return refused

        name = str(name or "").strip().lower()
        label = str(label or "").strip()
        if not name or not label:
            return MutationResult.refused(contract.REASON_INVALID_INPUT)

        flag = enforce_protected_superadmin_flag(
            name, _coerce_flag(is_superadmin), self.policy.protected_role_names
        )
        if flag and not session.is_superadmin:
            if self.policy.is_protected(name):
                return await self._refuse(
                    session,
                    name,
                    contract.REASON_SUPERADMIN_FLAG_REQUIRES_SUPERADMIN,
                    role=name,
                )
            log_invariant_skip("INVARIANT-4.superadmin_flag", "flag_forced_false", role=name)
            flag = False

        try:
            role = await self.roles.create_role(
                name=name, label=label, rank=_coerce_rank(rank), is_superadmin=flag
            )
            await self.roles.commit()
        except Exception:
            return await self._storage_failed("create_role")

        logger.info("role_created role=%s id=%s", role.name, role.id)
        await self.audit.log_security_event(
            session, role.name, "role_created", role_id=role.id, is_superadmin=role.is_superadmin
        )
        return MutationResult.ok()

    async def update_role(
        self,
        role_id: Any,
        *,
        label: Any,
        rank: Any = None,
        is_superadmin: Any = None,
    ) -> MutationResult:
        """Fields left as None keep their stored value."""
        session, refused = await self._authorize(self.policy.permissions_admin_route)
        if refused:
            return refused

        role_id = _coerce_role_id(role_id)
        label = str(label or "").strip()
        if role_id is None or not label:
            return MutationResult.refused(contract.REASON_INVALID_INPUT)

        try:
            existing = await self.roles.get_role(role_id)
        except Exception:
            return await self._storage_failed("update_role")
        if existing is None:
            return MutationResult.refused(contract.REASON_NOT_FOUND)

        requested_flag = bool(existing.is_superadmin) if is_superadmin is None else _coerce_flag(is_superadmin)
        new_rank = existing.rank if rank is None else _coerce_rank(rank)
        flag = enforce_protected_superadmin_flag(
            existing.name, requested_flag, self.policy.protected_role_names
        )
        try:
            validate_superadmin_flag_change(
                session.is_superadmin,
                bool(existing.is_superadmin),
                flag,
                role_name=existing.name,
            )
        except InvariantViolation as exc:
            return await self._refuse(session, existing.name, exc.reason, **exc.details)

        try:
            role = await self.roles.update_role(
                role_id, label=label, rank=new_rank, is_superadmin=flag
            )
            await self.roles.commit()
        except Exception:
            return await self._storage_failed("update_role")
        if role is None:
            return MutationResult.refused(contract.REASON_NOT_FOUND)

        await self.audit.log_security_event(
            session,
            role.name,
            "role_updated",
            role_id=role.id,
            label=role.label,
            rank=role.rank,
            is_superadmin=role.is_superadmin,
        )
        return MutationResult.ok()

    async def delete_role(self, role_id: Any) -> MutationResult:
        session, refused = await self._authorize(self.policy.permissions_admin_route)
        if refused:
            return refused

        role_id = _coerce_role_id(role_id)
        if role_id is None:
            return MutationResult.refused(contract.REASON_INVALID_INPUT)

        try:
            existing = await self.roles.get_role(role_id)
        except Exception:
            return await self._storage_failed("delete_role")
        if existing is None:
            return MutationResult.refused(contract.REASON_NOT_FOUND)

        try:
            validate_role_deletable(existing.name, self.policy.protected_role_names, role_id=role_id)
            validate_superadmin_flag_change(
                session.is_superadmin,
                bool(existing.is_superadmin),
                False,
                role_name=existing.name,
            )
        except InvariantViolation as exc:
            return await self._refuse(session, existing.name, exc.reason, **exc.details)

        try:
            deleted = await self.roles.delete_role(role_id)
            await self.roles.commit()
        except Exception:
            return await self._storage_failed("delete_role")
        if not deleted:
            return MutationResult.refused(contract.REASON_NOT_FOUND)

        logger.info("role_deleted role=%s id=%s", existing.name, role_id)
        await self.audit.log_security_event(session, existing.name, "role_deleted", role_id=role_id)
        return MutationResult.ok()

    async def _apply_grant(self, role_id: int, route: str, level: PermissionLevel) -> None:
        # A NONE grant is stored as the absence of a row
        if level == PermissionLevel.NONE:
            await self.grants.delete_grant(role_id, route)
        else:
            await self.grants.upsert_grant(role_id, route, int(level))

    async def upsert_route_permission(self, role_id: Any, route_key: Any, level: Any) -> MutationResult:
        session, refused = await self._authorize(self.policy.permissions_admin_route)
        if refused:
            return refused

        role_id = _coerce_role_id(role_id)
        route = normalize_route_key(str(route_key or ""))
        try:
            parsed = parse_level(level)
        except ValueError:
            return MutationResult.refused(contract.REASON_INVALID_INPUT)
        if role_id is None or not route:
            return MutationResult.refused(contract.REASON_INVALID_INPUT)

        try:
            role = await self.roles.get_role(role_id)
            if role is None:
                return MutationResult.refused(contract.REASON_NOT_FOUND)
            await self._apply_grant(role_id, route, parsed)
            await self.grants.commit()
        except Exception:
            return await self._storage_failed("upsert_route_permission")

        await self.audit.log_security_event(
            session, route, "grant_changed", role=role.name, level=parsed.label
        )
        return MutationResult.ok()

    async def save_permission_matrix(
        self,
        matrix: Mapping[Any, Mapping[str, Any]],
    ) -> MutationResult:
        """Apply a role_id -> route -> level matrix cell by cell.

        Every cell is validated before anything is written. Cells for unknown
        role ids are skipped.
        """
        session, refused = await self._authorize(self.policy.permissions_admin_route)
        if refused:
            return refused

        cells: list[tuple[int, str, PermissionLevel]] = []
        for raw_role_id, routes in matrix.items():
            role_id = _coerce_role_id(raw_role_id)
            if role_id is None or not isinstance(routes, Mapping):
                return MutationResult.refused(contract.REASON_INVALID_INPUT)
            for raw_route, raw_level in routes.items():
                route = normalize_route_key(str(raw_route or ""))
                if not route:
                    return MutationResult.refused(contract.REASON_INVALID_INPUT)
                try:
                    cells.append((role_id, route, parse_level(raw_level)))
                except ValueError:
                    return MutationResult.refused(contract.REASON_INVALID_INPUT)

        try:
            known_ids = {role.id for role in await self.roles.list_roles()}
            applied = 0
            for role_id, route, level in cells:
                if role_id not in known_ids:
                    logger.warning("permission_matrix_unknown_role role_id=%s", role_id)
                    continue
                await self._apply_grant(role_id, route, level)
                applied += 1
            await self.grants.commit()
        except Exception:
            return await self._storage_failed("save_permission_matrix")

        await self.audit.log_security_event(
            session, self.policy.permissions_admin_route, "permission_matrix_saved", cells=applied
        )
        return MutationResult.ok()

    async def set_identity_roles(self, identity_id: Any, role_ids: Sequence[Any]) -> MutationResult:
        """Replace the role memberships of ``identity_id``.

        Only superadmins may change memberships, and a superadmin can never be
        moved to a role set without a superadmin role. Both refusals are
        audited with their own reason code.
        """
        session = await self.gate.resolve_session()
        if not session.signed_in:
            return MutationResult.refused(contract.REASON_UNAUTHENTICATED)

        target_id = str(identity_id or "").strip()
        if not target_id:
            return MutationResult.refused(contract.REASON_INVALID_INPUT)

        try:
            catalog = {role.id: SessionRole.from_row(role) for role in await self.roles.list_roles()}
            current_ids = set(await self.roles.list_role_memberships(target_id))
        except Exception:
            return await self._storage_failed("set_identity_roles")

        requested = [_coerce_role_id(value) for value in role_ids]
        desired_ids = {role_id for role_id in requested if role_id in catalog}
        if not desired_ids:
            default = next(
                (role for role in catalog.values() if role.name == self.policy.default_role_name),
                None,
            )
            if default is None:
                return MutationResult.refused(contract.REASON_INVALID_INPUT)
            desired_ids = {default.id}

        current = [catalog[role_id] for role_id in current_ids if role_id in catalog]
        desired = [catalog[role_id] for role_id in desired_ids]

        try:
            validate_role_change(
                session.is_superadmin,
                any(role.is_superadmin for role in current),
                any(role.is_superadmin for role in desired),
                target_id=target_id,
                attempted_roles=sorted(role.name for role in desired),
            )
        except ForbiddenRoleChange as exc:
            logger.warning(
                "role_change_refused reason=%s target=%s actor=%s",
                exc.reason,
                target_id,
                session.user_id,
            )
            return await self._refuse(session, target_id, exc.reason, **(exc.details or {}))

        _, refused = await self._authorize(self.policy.users_admin_route)
        if refused:
            return refused

        added = sorted(desired_ids - current_ids)
        removed = sorted(current_ids - desired_ids)
        if not added and not removed:
            return MutationResult.ok()

        try:
            await self.roles.add_memberships(target_id, added)
            await self.roles.remove_memberships(target_id, removed)
            await self.roles.commit()
        except Exception:
            return await self._storage_failed("set_identity_roles")

        await self.audit.log_role_change(
            session,
            target_id,
            previous=[role.name for role in current],
            current=[role.name for role in desired],
        )
        return MutationResult.ok()

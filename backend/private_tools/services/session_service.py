import logging

from ..domain.entities import Identity, SessionInfo, SessionRole
from ..domain.ports.identity import IdentityProvider
from ..domain.ports.rbac import GrantStore, RoleStore
from ..rbac.policy import RbacPolicy
from .permission_resolver import pick_primary_role, resolve_effective_permissions

logger = logging.getLogger(__name__)


class SessionService:
    """Builds the SessionInfo of the current request.

    Reconstructed from a live read of roles and grants on every call; nothing
    is cached across requests.
    """

    def __init__(
        self,
        identity_provider: IdentityProvider,
        roles: RoleStore,
        grants: GrantStore,
        policy: RbacPolicy,
    ):
        self.identity_provider = identity_provider
        self.roles = roles
        self.grants = grants
        self.policy = policy

    async def resolve_session(self) -> SessionInfo:
        identity = await self.identity_provider.current_identity()
        if identity is None:
            return SessionInfo.anonymous()

        catalog = {role.id: SessionRole.from_row(role) for role in await self.roles.list_roles()}
        membership_ids = await self.roles.list_role_memberships(identity.id)

        if membership_ids:
            held = [catalog[role_id] for role_id in dict.fromkeys(membership_ids) if role_id in catalog]
        else:
            default_role = await self._assign_default_role(identity)
            held = [default_role] if default_role is not None else []

        grants = await self.grants.list_grants([role.id for role in held]) if held else []
        effective = resolve_effective_permissions(held, grants)

        return SessionInfo(
            signed_in=True,
            user_id=identity.id,
            email=identity.email,
            roles=held,
            primary_role=pick_primary_role(held),
            is_superadmin=effective.is_superadmin,
            permissions=effective.levels,
        )

    async def _assign_default_role(self, identity: Identity) -> SessionRole | None:
        try:
            row = await self.roles.assign_default_role(identity.id, self.policy.default_role_name)
            if row is None:
                logger.warning(
                    "default_role_missing role=%s identity=%s",
                    self.policy.default_role_name,
                    identity.id,
                )
                return None
            await self.roles.commit()
        except Exception:
            logger.exception("default_role_assignment_failed identity=%s", identity.id)
            await self.roles.rollback()
            return None

        logger.info("default_role_assigned role=%s identity=%s", row.name, identity.id)
        return SessionRole.from_row(row)

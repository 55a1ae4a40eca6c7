from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.role import Role
from ..models.user_role import UserRole


class RoleRepository:
    """Role catalog and identity memberships.

    Implements the RoleStore port. Writes are flushed, never committed;
    callers own the transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_roles(self) -> list[Role]:
        result = await self.session.execute(
            select(Role).order_by(Role.rank, Role.name)
        )
        return list(result.scalars().all())

    async def get_role(self, role_id: int) -> Role | None:
        return await self.session.get(Role, role_id)

    async def get_by_name(self, name: str) -> Role | None:
        result = await self.session.execute(
            select(Role).where(Role.name == name)
        )
        return result.scalar_one_or_none()

    async def list_role_memberships(self, identity_id: str) -> list[int]:
        result = await self.session.execute(
            select(UserRole.role_id).where(UserRole.user_id == identity_id)
        )
        return list(result.scalars().all())

    async def assign_default_role(self, identity_id: str, role_name: str) -> Role | None:
        role = await self.get_by_name(role_name)
        if role is None:
            return None
        # Concurrent first requests for the same identity collapse on the unique pair
        await self.session.execute(
            insert(UserRole)
            .values(user_id=identity_id, role_id=role.id)
            .on_conflict_do_nothing(index_elements=["user_id", "role_id"])
        )
        await self.session.flush()
        return role

    async def add_memberships(self, identity_id: str, role_ids: Sequence[int]) -> None:
        if not role_ids:
            return
        await self.session.execute(
            insert(UserRole)
            .values([{"user_id": identity_id, "role_id": role_id} for role_id in role_ids])
            .on_conflict_do_nothing(index_elements=["user_id", "role_id"])
        )
        await self.session.flush()

    async def remove_memberships(self, identity_id: str, role_ids: Sequence[int]) -> None:
        if not role_ids:
            return
        await self.session.execute(
            delete(UserRole).where(
                UserRole.user_id == identity_id,
                UserRole.role_id.in_(list(role_ids)),
            )
        )
        await self.session.flush()

    async def create_role(
        self, *, name: str, label: str, rank: int, is_superadmin: bool
    ) -> Role:
        role = Role(name=name, label=label, rank=rank, is_superadmin=is_superadmin)
        self.session.add(role)
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def update_role(
        self, role_id: int, *, label: str, rank: int, is_superadmin: bool
    ) -> Role | None:
        role = await self.get_role(role_id)
        if role is None:
            return None
        role.label = label
        role.rank = rank
        role.is_superadmin = is_superadmin
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def delete_role(self, role_id: int) -> bool:
        role = await self.get_role(role_id)
        if role is None:
            return False
        await self.session.delete(role)
        await self.session.flush()
        return True

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.route_permission import RoutePermission


class RoutePermissionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_grants(self, role_ids: Sequence[int] | None = None) -> list[RoutePermission]:
        query = select(RoutePermission).order_by(RoutePermission.route, RoutePermission.role_id)
        if role_ids is not None:
            if not role_ids:
                return []
            query = query.where(RoutePermission.role_id.in_(list(role_ids)))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def upsert_grant(self, role_id: int, route: str, level: int) -> None:
        stmt = insert(RoutePermission).values(role_id=role_id, route=route, level=level)
        await self.session.execute(
            stmt.on_conflict_do_update(
                index_elements=["role_id", "route"],
                set_={"level": stmt.excluded.level},
            )
        )
        await self.session.flush()

    async def delete_grant(self, role_id: int, route: str) -> bool:
        result = await self.session.execute(
            delete(RoutePermission).where(
                RoutePermission.role_id == role_id,
                RoutePermission.route == route,
            )
        )
        await self.session.flush()
        return bool(result.rowcount)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol


class RoleData(Protocol):
    id: int
    name: str
    label: str
    rank: int
    is_superadmin: bool


class GrantData(Protocol):
    role_id: int
    route: str
    level: int


class RoleStore(Protocol):
    async def list_roles(self) -> list[RoleData]:
        ...

    async def get_role(self, role_id: int) -> RoleData | None:
        ...

    async def list_role_memberships(self, identity_id: str) -> list[int]:
        ...

    async def assign_default_role(self, identity_id: str, role_name: str) -> RoleData | None:
        """Attach the named role if the identity holds none; None if the role is missing."""
        ...

    async def add_memberships(self, identity_id: str, role_ids: Sequence[int]) -> None:
        ...

    async def remove_memberships(self, identity_id: str, role_ids: Sequence[int]) -> None:
        ...

    async def create_role(
        self, *, name: str, label: str, rank: int, is_superadmin: bool
    ) -> RoleData:
        ...

    async def update_role(
        self, role_id: int, *, label: str, rank: int, is_superadmin: bool
    ) -> RoleData | None:
        ...

    async def delete_role(self, role_id: int) -> bool:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...


class GrantStore(Protocol):
    async def list_grants(self, role_ids: Sequence[int] | None = None) -> list[GrantData]:
        ...

    async def upsert_grant(self, role_id: int, route: str, level: int) -> None:
        ...

    async def delete_grant(self, role_id: int, route: str) -> bool:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...

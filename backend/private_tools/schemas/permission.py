from pydantic import BaseModel, Field

from .role import RoleResponse


class MutationResponse(BaseModel):
    applied: bool
    reason: str | None = None


class GrantUpdate(BaseModel):
    # int, numeric string or level name ("read", "Admin", ...)
    level: int | str


class PermissionMatrixUpdate(BaseModel):
    matrix: dict[int, dict[str, int | str]] = Field(default_factory=dict)


class OverviewRouteResponse(BaseModel):
    route: str
    label: str
    description: str = ""
    default_level: int
    is_custom: bool = False
    levels: dict[str, int]
    explicit: list[str]


class PermissionOverviewResponse(BaseModel):
    roles: list[RoleResponse]
    routes: list[OverviewRouteResponse]
    labels: dict[int, str]

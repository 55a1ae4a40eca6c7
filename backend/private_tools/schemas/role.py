from pydantic import BaseModel, ConfigDict, Field


class RoleCreate(BaseModel):
    name: str = Field(..., max_length=100)
    label: str = Field(..., max_length=255)
    rank: int | float | str | None = 0
    is_superadmin: bool = False


class RoleUpdate(BaseModel):
    label: str = Field(..., max_length=255)
    rank: int | float | str | None = None
    is_superadmin: bool | None = None


class RoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    label: str
    rank: int
    is_superadmin: bool


class IdentityRolesUpdate(BaseModel):
    role_ids: list[int] = Field(default_factory=list)

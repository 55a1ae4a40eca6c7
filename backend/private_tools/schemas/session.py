from pydantic import BaseModel


class SessionRoleResponse(BaseModel):
    id: int
    name: str
    label: str
    rank: int
    is_superadmin: bool


class SessionResponse(BaseModel):
    signed_in: bool
    user_id: str | None = None
    email: str | None = None
    roles: list[SessionRoleResponse] = []
    primary_role: SessionRoleResponse | None = None
    is_superadmin: bool = False
    permissions: dict[str, int] = {}


class GateResponse(BaseModel):
    allowed: bool
    reason: str | None = None

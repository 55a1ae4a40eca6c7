from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class AuditEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    ts: datetime
    action: str
    actor_user_id: str | None = None
    actor_email: str | None = None
    target: str | None = None
    detail: dict[str, Any] | None = None

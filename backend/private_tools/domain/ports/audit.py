from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from ..entities import AuditEvent


class AuditSink(Protocol):
    async def append(self, event: AuditEvent) -> None:
        ...


class AuditLog(Protocol):
    async def list_recent(
        self,
        limit: int = 50,
        offset: int = 0,
        action: str | None = None,
    ) -> Sequence[Any]:
        ...

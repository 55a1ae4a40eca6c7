from __future__ import annotations

from typing import Protocol

from ..entities import Identity


class IdentityProvider(Protocol):
    async def current_identity(self) -> Identity | None:
        """Identity of the current request, or None when unauthenticated."""
        ...

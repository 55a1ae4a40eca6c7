"""
Admin dependencies.

Mutations answer 200 with ``{applied, reason}`` once the caller is signed in;
anonymous callers are rejected up front with 401. Level checks and their
denial audits happen inside the services.
"""
from fastapi import Depends

from ..dependencies import get_access_gate
from ..domain.entities import SessionInfo
from ..errors import AuthError
from ..services.access_gate import AccessGate


async def require_signed_in(gate: AccessGate = Depends(get_access_gate)) -> SessionInfo:
    session = await gate.resolve_session()
    if not session.signed_in:
        raise AuthError()
    return session

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_access_gate
from ..domain.entities import SessionInfo, SessionRole
from ..errors import ValidationError
from ..rbac.levels import parse_level
from ..schemas.session import GateResponse, SessionResponse, SessionRoleResponse
from ..services.access_gate import AccessGate

router = APIRouter(prefix="/api", tags=["session"])


def _role_response(role: SessionRole) -> SessionRoleResponse:
    return SessionRoleResponse(
        id=role.id,
        name=role.name,
        label=role.label,
        rank=role.rank,
        is_superadmin=role.is_superadmin,
    )


def session_response(session: SessionInfo) -> SessionResponse:
    return SessionResponse(
        signed_in=session.signed_in,
        user_id=session.user_id,
        email=session.email,
        roles=[_role_response(role) for role in session.roles],
        primary_role=_role_response(session.primary_role) if session.primary_role else None,
        is_superadmin=session.is_superadmin,
        permissions={route: int(level) for route, level in session.permissions.items()},
    )


@router.get("/session", response_model=SessionResponse)
async def get_session_info(gate: AccessGate = Depends(get_access_gate)) -> SessionResponse:
    return session_response(await gate.resolve_session())


@router.get("/gate", response_model=GateResponse)
async def evaluate_gate(
    route: str = Query(..., min_length=1),
    level: str = Query("read"),
    gate: AccessGate = Depends(get_access_gate),
) -> GateResponse:
    try:
        required = parse_level(level)
    except ValueError as exc:
        raise ValidationError(str(exc)) from None
    decision = await gate.evaluate(route, required)
    return GateResponse(allowed=decision.allowed, reason=decision.reason)

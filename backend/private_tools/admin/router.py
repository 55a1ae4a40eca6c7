"""
Administration router.

- GET  /admin/permissions                    - role x route overview
- PUT  /admin/permissions                    - bulk matrix save
- POST /admin/roles                          - create role
- PATCH /admin/roles/{role_id}               - update role
- DELETE /admin/roles/{role_id}              - delete role
- PUT  /admin/roles/{role_id}/routes/{route} - upsert one grant
- GET  /admin/users/{identity_id}/roles      - held roles
- PUT  /admin/users/{identity_id}/roles      - replace memberships
- GET  /admin/audit                          - recent audit events
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_admin_overview_service, get_role_admin_service
from ..domain.entities import MutationResult
from ..rbac.levels import PERMISSION_LABELS
from ..schemas.audit_event import AuditEventResponse
from ..schemas.permission import (
    GrantUpdate,
    MutationResponse,
    OverviewRouteResponse,
    PermissionMatrixUpdate,
    PermissionOverviewResponse,
)
from ..schemas.role import IdentityRolesUpdate, RoleCreate, RoleResponse, RoleUpdate
from ..services.admin.overview_service import AdminOverviewService
from ..services.admin.role_admin_service import RoleAdminService
from .dependencies import require_signed_in

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
)


def _mutation_response(result: MutationResult) -> MutationResponse:
    return MutationResponse(applied=result.applied, reason=result.reason)


@router.get("/permissions", response_model=PermissionOverviewResponse)
async def get_permissions(
    service: AdminOverviewService = Depends(get_admin_overview_service),
) -> PermissionOverviewResponse:
    overview = await service.get_permission_overview()
    return PermissionOverviewResponse(
        roles=[
            RoleResponse(
                id=role.id,
                name=role.name,
                label=role.label,
                rank=role.rank,
                is_superadmin=role.is_superadmin,
            )
            for role in overview.roles
        ],
        routes=[
            OverviewRouteResponse(
                route=row.route,
                label=row.label,
                description=row.description,
                default_level=int(row.default_level),
                is_custom=row.is_custom,
                levels={name: int(level) for name, level in row.levels.items()},
                explicit=sorted(row.explicit),
            )
            for row in overview.routes
        ],
        labels={int(level): label for level, label in PERMISSION_LABELS.items()},
    )


@router.put(
    "/permissions",
    response_model=MutationResponse,
    dependencies=[Depends(require_signed_in)],
)
async def save_permissions(
    payload: PermissionMatrixUpdate,
    service: RoleAdminService = Depends(get_role_admin_service),
) -> MutationResponse:
    return _mutation_response(await service.save_permission_matrix(payload.matrix))


@router.post(
    "/roles",
    response_model=MutationResponse,
    dependencies=[Depends(require_signed_in)],
)
async def create_role(
    payload: RoleCreate,
    service: RoleAdminService = Depends(get_role_admin_service),
) -> MutationResponse:
    result = await service.create_role(
        name=payload.name,
        label=payload.label,
        rank=payload.rank,
        is_superadmin=payload.is_superadmin,
    )
    return _mutation_response(result)


@router.patch(
    "/roles/{role_id}",
    response_model=MutationResponse,
    dependencies=[Depends(require_signed_in)],
)
async def update_role(
    role_id: int,
    payload: RoleUpdate,
    service: RoleAdminService = Depends(get_role_admin_service),
) -> MutationResponse:
    result = await service.update_role(
        role_id,
        label=payload.label,
        rank=payload.rank,
        is_superadmin=payload.is_superadmin,
    )
    return _mutation_response(result)


@router.delete(
    "/roles/{role_id}",
    response_model=MutationResponse,
    dependencies=[Depends(require_signed_in)],
)
async def delete_role(
    role_id: int,
    service: RoleAdminService = Depends(get_role_admin_service),
) -> MutationResponse:
    return _mutation_response(await service.delete_role(role_id))


@router.put(
    "/roles/{role_id}/routes/{route:path}",
    response_model=MutationResponse,
    dependencies=[Depends(require_signed_in)],
)
async def upsert_route_permission(
    role_id: int,
    route: str,
    payload: GrantUpdate,
    service: RoleAdminService = Depends(get_role_admin_service),
) -> MutationResponse:
    return _mutation_response(
        await service.upsert_route_permission(role_id, route, payload.level)
    )


@router.get("/users/{identity_id}/roles", response_model=list[RoleResponse])
async def get_identity_roles(
    identity_id: str,
    service: AdminOverviewService = Depends(get_admin_overview_service),
) -> list[RoleResponse]:
    roles = await service.list_identity_roles(identity_id)
    return [RoleResponse.model_validate(role) for role in roles]


@router.put(
    "/users/{identity_id}/roles",
    response_model=MutationResponse,
    dependencies=[Depends(require_signed_in)],
)
async def set_identity_roles(
    identity_id: str,
    payload: IdentityRolesUpdate,
    service: RoleAdminService = Depends(get_role_admin_service),
) -> MutationResponse:
    return _mutation_response(await service.set_identity_roles(identity_id, payload.role_ids))


@router.get("/audit", response_model=list[AuditEventResponse])
async def list_audit_events(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    action: str | None = Query(None),
    service: AdminOverviewService = Depends(get_admin_overview_service),
) -> list[AuditEventResponse]:
    events = await service.list_audit_events(limit=limit, offset=offset, action=action)
    return [AuditEventResponse.model_validate(event) for event in events]

from collections.abc import AsyncGenerator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .crud.audit_event import AuditEventRepository, IsolatedAuditSink
from .crud.role import RoleRepository
from .crud.route_permission import RoutePermissionRepository
from .database import get_session
from .domain.ports.audit import AuditLog, AuditSink
from .domain.ports.identity import IdentityProvider
from .domain.ports.rbac import GrantStore, RoleStore
from .rbac.policy import RbacPolicy
from .security.identity import JwtIdentityProvider
from .services.access_gate import AccessGate
from .services.admin.overview_service import AdminOverviewService
from .services.admin.role_admin_service import RoleAdminService
from .services.audit.audit_service import AuditService
from .services.session_service import SessionService

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


def get_policy() -> RbacPolicy:
    return RbacPolicy.from_settings(settings)


def get_identity_provider(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> IdentityProvider:
    token = None
    if credentials is not None and credentials.scheme.lower() == "bearer":
        token = credentials.credentials
    return JwtIdentityProvider(
        token,
        key=settings.identity_jwt_key,
        algorithm=settings.identity_jwt_algorithm,
        audience=settings.identity_jwt_audience,
    )


def get_role_store(db: AsyncSession = Depends(get_db)) -> RoleStore:
    return RoleRepository(db)


def get_grant_store(db: AsyncSession = Depends(get_db)) -> GrantStore:
    return RoutePermissionRepository(db)


def get_audit_sink() -> AuditSink:
    return IsolatedAuditSink()


def get_audit_log(db: AsyncSession = Depends(get_db)) -> AuditLog:
    return AuditEventRepository(db)


def get_audit_service(sink: AuditSink = Depends(get_audit_sink)) -> AuditService:
    return AuditService(sink)


def get_session_service(
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    roles: RoleStore = Depends(get_role_store),
    grants: GrantStore = Depends(get_grant_store),
    policy: RbacPolicy = Depends(get_policy),
) -> SessionService:
    return SessionService(identity_provider, roles, grants, policy)


def get_access_gate(
    sessions: SessionService = Depends(get_session_service),
    audit: AuditService = Depends(get_audit_service),
) -> AccessGate:
    return AccessGate(sessions, audit)


def get_role_admin_service(
    gate: AccessGate = Depends(get_access_gate),
    roles: RoleStore = Depends(get_role_store),
    grants: GrantStore = Depends(get_grant_store),
    audit: AuditService = Depends(get_audit_service),
    policy: RbacPolicy = Depends(get_policy),
) -> RoleAdminService:
    return RoleAdminService(gate, roles, grants, audit, policy)


def get_admin_overview_service(
    gate: AccessGate = Depends(get_access_gate),
    roles: RoleStore = Depends(get_role_store),
    grants: GrantStore = Depends(get_grant_store),
    audit_log: AuditLog = Depends(get_audit_log),
    policy: RbacPolicy = Depends(get_policy),
) -> AdminOverviewService:
    return AdminOverviewService(gate, roles, grants, audit_log, policy)

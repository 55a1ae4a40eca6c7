from .base import Base
from .role import Role
from .user_role import UserRole
from .route_permission import RoutePermission
from .audit_event import AuditEvent

__all__ = [
    "Base",
    "Role",
    "UserRole",
    "RoutePermission",
    "AuditEvent",
]

from .audit import AuditLog, AuditSink
from .identity import IdentityProvider
from .rbac import GrantData, GrantStore, RoleData, RoleStore

__all__ = [
    "AuditLog",
    "AuditSink",
    "IdentityProvider",
    "GrantData",
    "GrantStore",
    "RoleData",
    "RoleStore",
]

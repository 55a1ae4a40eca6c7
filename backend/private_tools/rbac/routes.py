"""Statically known routes of the tool suite.

Descriptor defaults only pre-populate the administration overview. They are
never granted to an identity by the resolver.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from .levels import PermissionLevel

_DUPLICATE_SLASHES = re.compile(r"/{2,}")


def normalize_route_key(key: str | None) -> str:
    """Strip leading slashes and collapse repeated ones: ``//tools//files`` -> ``tools/files``."""
    if not key:
        return ""
    return _DUPLICATE_SLASHES.sub("/", key.strip().lstrip("/")).strip()


@dataclass(frozen=True)
class RouteDescriptor:
    route: str
    label: str
    description: str = ""
    default_level: PermissionLevel = PermissionLevel.NONE


ROUTE_DESCRIPTORS: Final[tuple[RouteDescriptor, ...]] = (
    RouteDescriptor("dashboard", "Dashboard", "Start page and activity overview", PermissionLevel.READ),
    RouteDescriptor("tools", "Tools", "Tool overview", PermissionLevel.READ),
    RouteDescriptor("tools/files", "Files", "Storage, folders, shares and trash", PermissionLevel.READ),
    RouteDescriptor("tools/journal", "Journal", "Private journal with markdown and search", PermissionLevel.READ),
    RouteDescriptor("tools/dispoplaner", "Dispoplaner", "Weekly cinema programming", PermissionLevel.READ),
    RouteDescriptor("tools/dienstplaner", "Dienstplaner", "Shifts, staff and monthly planning", PermissionLevel.READ),
    RouteDescriptor("tools/calender", "Calendar", "Appointments and calendar sharing", PermissionLevel.READ),
    RouteDescriptor("tools/messages", "Messages", "Internal end-to-end encrypted chat", PermissionLevel.READ),
    RouteDescriptor("tools/storage", "Storage", "Storage insights and buckets"),
    RouteDescriptor("tools/system", "System", "System overview and runtime details"),
    RouteDescriptor("admin", "Admin", "Administration console"),
    RouteDescriptor("admin/users", "Users", "Users and role memberships"),
    RouteDescriptor("admin/settings", "Permissions", "Roles and route permissions"),
    RouteDescriptor("monitoring", "Monitoring", "Error and performance monitoring"),
    RouteDescriptor("activity", "Activity", "Audit event feed"),
)

DESCRIPTORS_BY_ROUTE: Final[dict[str, RouteDescriptor]] = {
    descriptor.route: descriptor for descriptor in ROUTE_DESCRIPTORS
}


def get_descriptor(route_key: str) -> RouteDescriptor | None:
    return DESCRIPTORS_BY_ROUTE.get(normalize_route_key(route_key))

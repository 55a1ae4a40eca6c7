from .levels import PermissionLevel, describe_level, normalize_level, parse_level
from .routes import ROUTE_DESCRIPTORS, RouteDescriptor, normalize_route_key

__all__ = [
    "PermissionLevel",
    "describe_level",
    "normalize_level",
    "parse_level",
    "ROUTE_DESCRIPTORS",
    "RouteDescriptor",
    "normalize_route_key",
]

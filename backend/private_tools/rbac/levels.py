"""Permission levels.

Levels form a total order ``NONE < READ < WRITE < ADMIN``; every comparison
goes through the integer value.
"""
from __future__ import annotations

import math
from enum import IntEnum
from typing import Any, Final


class PermissionLevel(IntEnum):
    NONE = 0
    READ = 1
    WRITE = 2
    ADMIN = 3

    @property
    def label(self) -> str:
        return PERMISSION_LABELS[self]


PERMISSION_LABELS: Final[dict[PermissionLevel, str]] = {
    PermissionLevel.NONE: "None",
    PermissionLevel.READ: "Read",
    PermissionLevel.WRITE: "Write",
    PermissionLevel.ADMIN: "Admin",
}

_LEVEL_BY_NAME: Final[dict[str, PermissionLevel]] = {
    **{level.name.lower(): level for level in PermissionLevel},
    **{label.lower(): level for level, label in PERMISSION_LABELS.items()},
}


def normalize_level(value: Any) -> PermissionLevel:
    """Clamp an arbitrary stored value onto the level scale.

    Non-numeric, NaN and ``None`` values collapse to ``NONE``. Values between
    two levels round down.
    """
    if isinstance(value, PermissionLevel):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return PermissionLevel.NONE
    if math.isnan(value):
        return PermissionLevel.NONE
    if value <= PermissionLevel.NONE:
        return PermissionLevel.NONE
    if value >= PermissionLevel.ADMIN:
        return PermissionLevel.ADMIN
    return PermissionLevel(int(value))


def parse_level(raw: Any) -> PermissionLevel:
    """Parse a submitted level given as int, numeric string or level name.

    Raises:
        ValueError: If the value cannot be read as a level
    """
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return normalize_level(raw)
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in _LEVEL_BY_NAME:
            return _LEVEL_BY_NAME[text]
        try:
            return normalize_level(float(text))
        except ValueError:
            pass
    raise ValueError(f"Invalid permission level '{raw}'")


def describe_level(level: Any) -> str:
    return PERMISSION_LABELS[normalize_level(level)]

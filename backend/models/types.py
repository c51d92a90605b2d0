"""Shared type definitions for type checking.

Uses NewType for IDs to provide compile-time type safety - prevents mixing
different ID types (e.g., passing UserID where TemplateID expected).

Uses TypeAlias for complex types that are purely structural.
"""

from typing import Any, NewType, TypeAlias

# ID types using NewType for type safety
# These create distinct types that mypy can differentiate
UserID = NewType("UserID", str)
TemplateID = NewType("TemplateID", str)
DeviceID = NewType("DeviceID", str)
NotificationID = NewType("NotificationID", str)

# Structural aliases using TypeAlias
# These are for complex types where structural compatibility is desired
NotificationType: TypeAlias = str  # Preference id, e.g. "mood_reminder"
ClockTime: TypeAlias = str  # HH:MM, 24-hour
ConditionValue: TypeAlias = bool | int | float | str
NotificationContext: TypeAlias = dict[str, Any]

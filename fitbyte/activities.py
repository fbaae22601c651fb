"""
Activity types and the calories-burned rule.
"""

from __future__ import annotations

from enum import Enum


class ActivityType(str, Enum):
    WALKING = "Walking"
    YOGA = "Yoga"
    STRETCHING = "Stretching"
    CYCLING = "Cycling"
    SWIMMING = "Swimming"
    DANCING = "Dancing"
    HIKING = "Hiking"
    RUNNING = "Running"
    HIIT = "HIIT"
    JUMP_ROPE = "JumpRope"


# kcal burned per minute of activity
CALORIES_PER_MINUTE: dict[ActivityType, int] = {
    ActivityType.WALKING: 4,
    ActivityType.YOGA: 4,
    ActivityType.STRETCHING: 4,
    ActivityType.CYCLING: 8,
    ActivityType.SWIMMING: 8,
    ActivityType.DANCING: 8,
    ActivityType.HIKING: 10,
    ActivityType.RUNNING: 10,
    ActivityType.HIIT: 10,
    ActivityType.JUMP_ROPE: 10,
}


def parse_activity_type(value: str | None) -> ActivityType | None:
    """Return the matching ``ActivityType`` or ``None`` for unknown names."""
    if not value:
        return None
    try:
        return ActivityType(value)
    except ValueError:
        return None


def calculate_calories_burned(
    activity_type: ActivityType | str, duration_in_minutes: int
) -> int:
    activity_type = ActivityType(activity_type)
    if duration_in_minutes < 1:
        raise ValueError("duration_in_minutes must be at least 1")
    return CALORIES_PER_MINUTE[activity_type] * duration_in_minutes

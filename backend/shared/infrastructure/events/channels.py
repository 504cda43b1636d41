"""
Redis Channel Naming.
"""

from __future__ import annotations

# Kitchen display and floor staff are not partitioned per table
CHANNEL_KITCHEN = "kitchen"
CHANNEL_STAFF = "staff"


def _validate_positive_id(id_value: int, name: str) -> None:
    if not isinstance(id_value, int) or id_value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {id_value}")


def channel_table_session(session_id: int) -> str:
    """Channel for diner notifications on a table session."""
    _validate_positive_id(session_id, "session_id")
    return f"session:{session_id}"


def channel_kitchen() -> str:
    """Channel for the kitchen display."""
    return CHANNEL_KITCHEN


def channel_staff() -> str:
    """Channel for waiters (payment requests, orders ready to serve)."""
    return CHANNEL_STAFF

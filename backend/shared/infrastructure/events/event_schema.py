"""
Notification envelope.

    {"type": "ORDER_STATUS_CHANGED", "session_id": 3,
     "entity": {"order_id": 10, "from_status": "waiting", "to_status": "preparing"},
     "actor": {"diner_name": null, "role": "KITCHEN"},
     "ts": "2024-05-01T20:15:03.120000+00:00", "v": 1}

Money inside ``entity`` is serialized as a string, never as a float.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

SCHEMA_VERSION = 1


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_positive_int(value: Any) -> bool:
    # bool is an int subclass
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass
class Event:
    type: str
    session_id: int
    entity: dict[str, Any] = field(default_factory=dict)
    actor: dict[str, Any] = field(default_factory=dict)
    ts: str = field(default_factory=_now)
    v: int = SCHEMA_VERSION

    def __post_init__(self) -> None:
        if not isinstance(self.type, str) or not self.type:
            raise ValueError("Event type must be a non-empty string")
        if not _is_positive_int(self.session_id):
            raise ValueError(f"Event session_id must be a positive integer, got {self.session_id!r}")
        for name in ("entity", "actor"):
            value = getattr(self, name)
            if value is None:
                setattr(self, name, {})
            elif not isinstance(value, dict):
                raise ValueError(f"Event {name} must be a dict")

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False, default=str)

    @classmethod
    def from_json(cls, raw: str) -> "Event":
        return cls(**json.loads(raw))

"""Events passed from the HTTP side to connected sync clients."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

_ZERO_TIME = "0001-01-01T00:00:00Z"
_FRACTION = re.compile(r"\.(\d+)")


class EventType(str, Enum):
    PROGRESS_UPDATE = "progress_update"
    LIBRARY_UPDATE = "library_update"
    USER_MESSAGE = "user_message"


def _format_time(moment):
    if moment is None:
        return _ZERO_TIME
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def _parse_time(value):
    if value is None or value == "" or value == _ZERO_TIME:
        return None
    if not isinstance(value, str):
        raise ValueError(f"invalid timestamp: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)
    return datetime.fromisoformat(text)


def _json_default(value):
    if isinstance(value, datetime):
        return _format_time(value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"cannot encode {type(value).__name__} as JSON")


@dataclass
class Event:
    """A notification addressed to every sync client of one user."""

    type: EventType | str
    user_id: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime | None = None

    def to_json(self):
        """Encode the event as one JSON object."""
        type_value = self.type.value if isinstance(self.type, EventType) else str(self.type)
        return json.dumps(
            {
                "type": type_value,
                "user_id": self.user_id,
                "data": self.data,
                "timestamp": _format_time(self.timestamp),
            },
            default=_json_default,
        )

    @classmethod
    def from_json(cls, text):
        """Decode an event; unknown event types are kept as plain strings."""
        raw = json.loads(text)
        if not isinstance(raw, dict):
            raise ValueError("event must be a JSON object")
        type_value = str(raw.get("type") or "")
        try:
            event_type: EventType | str = EventType(type_value)
        except ValueError:
            event_type = type_value
        data = raw.get("data") or {}
        if not isinstance(data, dict):
            raise ValueError("event data must be a JSON object")
        return cls(
            type=event_type,
            user_id=str(raw.get("user_id") or ""),
            data=data,
            timestamp=_parse_time(raw.get("timestamp")),
        )


@dataclass
class ProgressUpdateEvent:
    user_id: str
    manga_id: str
    manga_title: str = ""
    chapter_id: int = 0
    status: str = ""
    last_read_date: datetime | None = None


@dataclass
class LibraryUpdateEvent:
    user_id: str
    manga_id: str
    action: str = ""


@dataclass
class BroadcastEvent:
    """An event handed to the UDP notification broadcaster."""

    user_id: str = ""
    event_type: str = ""
    data: Any = None
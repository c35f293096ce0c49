"""Card change events pushed to an owner's open sessions."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class EventType(StrEnum):
    CARD_CREATED = "card_created"
    CARD_DELETED = "card_deleted"
    CARDS_MOVED = "cards_moved"
    HEARTBEAT = "heartbeat"


@dataclass
class Event:
    event_type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    channel: str = ""
    timestamp: float = field(default_factory=time.time)

    def payload(self) -> dict[str, Any]:
        """JSON body of the SSE message; the type travels inside the payload."""
        return {"type": self.event_type.value, "timestamp": self.timestamp, **self.data}

    @classmethod
    def heartbeat(cls) -> Event:
        return cls(event_type=EventType.HEARTBEAT)

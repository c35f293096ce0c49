"""SSE event system."""

from .manager import EventManager, event_manager, owner_channel
from .models import Event, EventType

__all__ = ["EventManager", "event_manager", "owner_channel", "Event", "EventType"]

from .interface import RemoteStore
from .delayed import DelayedEventStore
from .adapter import EventRepository

__all__ = ["RemoteStore", "DelayedEventStore", "EventRepository"]

from typing import Callable, NamedTuple
from datetime import datetime, timezone

__all__ = ['CODE_ISSUED', 'SESSION_CHANGED', 'PROFILE_SAVED', 'Event', 'EventBus']

CODE_ISSUED = "CODE_ISSUED"
SESSION_CHANGED = "SESSION_CHANGED"
PROFILE_SAVED = "PROFILE_SAVED"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], object]


class EventBus:
    """Synchronous publish/subscribe; one bus per auth session, never shared."""

    def __init__(self):
        self._subscribers: dict[str, list[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def publish(self, name: str, payload: dict) -> list[object]:
        if name not in self._subscribers:
            return []

        event = Event(
            name=name,
            ts=datetime.now(timezone.utc).isoformat(),
            payload=payload,
        )
        return [handler(event, payload) for handler in list(self._subscribers[name])]

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if handler in self._subscribers.get(name, []):
            self._subscribers[name].remove(handler)

from enum import Enum, auto
from typing import Any, Callable, Dict
import logging
import uuid

logger = logging.getLogger(__name__)


class AppEvent(Enum):
    """Authentication events the UI/state layer can react to."""
    SIGNED_UP = auto()
    LOGGED_IN = auto()
    LOGIN_FAILED = auto()
    LOCKED_OUT = auto()
    SESSION_RESTORED = auto()
    LOGGED_OUT = auto()


class Subscription:
    """Represents an event subscription that can be unsubscribed."""

    def __init__(self, event_bus: "EventBus", event: AppEvent, subscription_id: str):
        self._event_bus = event_bus
        self._event = event
        self._subscription_id = subscription_id
        self._active = True

    @property
    def id(self) -> str:
        return self._subscription_id

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._event_bus._unsubscribe_by_id(self._event, self._subscription_id)
            self._active = False


class EventBus:
    """Event bus decoupling the auth flows from whoever holds app state.

    Callbacks are held strongly; keep the Subscription and unsubscribe
    when the listener goes away.
    """

    def __init__(self) -> None:
        self._listeners: Dict[AppEvent, Dict[str, Callable[[Any], None]]] = {}

    def subscribe(self, event: AppEvent, callback: Callable[[Any], None]) -> Subscription:
        """Subscribe a callback to an event. Returns a Subscription for cleanup."""
        subscription_id = str(uuid.uuid4())
        self._listeners.setdefault(event, {})[subscription_id] = callback
        return Subscription(self, event, subscription_id)

    def _unsubscribe_by_id(self, event: AppEvent, subscription_id: str) -> None:
        if event in self._listeners:
            self._listeners[event].pop(subscription_id, None)

    def emit(self, event: AppEvent, data: Any = None) -> None:
        """Emit an event to all subscribers.

        A failing handler is logged and does not stop the others.
        """
        # Copy to avoid modification during iteration
        for callback in list(self._listeners.get(event, {}).values()):
            try:
                callback(data)
            except Exception:
                logger.exception(f"Error in event handler for {event.name}")

    def clear(self) -> None:
        """Clear all event subscriptions."""
        self._listeners.clear()

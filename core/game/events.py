"""Game events for the event system."""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Callable


class EventType(Enum):
    """Types of game events."""

    # Game flow events
    GAME_STARTED = auto()
    GAME_PAUSED = auto()
    GAME_RESUMED = auto()
    GAME_WON = auto()
    GAME_LOST = auto()

    # Card events
    CARD_DEALT = auto()
    PROBABILITIES_UPDATED = auto()

    # Selection events
    SLOT_SELECTED = auto()
    SLOT_DESELECTED = auto()

    # Prediction events
    PREDICTION_CORRECT = auto()
    PREDICTION_INCORRECT = auto()
    SLOT_DEACTIVATED = auto()

    # Error events
    INVALID_ACTION = auto()


@dataclass(frozen=True)
class GameEvent:
    """
    Something that happened in a game.

    Data holds plain values only: slots are named by (row, col) and cards
    by their printed form, so a presentation layer never holds references
    into the engine.
    """

    event_type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"{self.event_type.name}: {self.data}"


# Type alias for event handlers
EventHandler = Callable[[GameEvent], None]


# Hosted games live for a whole session, so history is capped
DEFAULT_HISTORY_SIZE = 512


class EventEmitter:
    """
    Fan game events out to subscribers.

    Handlers subscribe to one event type or, with None, to every event.
    The most recent events are kept for inspection.
    """

    def __init__(self, max_history: int = DEFAULT_HISTORY_SIZE) -> None:
        self._handlers: dict[EventType | None, list[EventHandler]] = {}
        self._event_history: deque[GameEvent] = deque(maxlen=max_history)

    def subscribe(
        self,
        handler: EventHandler,
        event_type: EventType | None = None,
    ) -> None:
        """
        Subscribe to events.

        Args:
            handler: Function to call when event occurs
            event_type: Specific event type to subscribe to, or None for all events
        """
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(
        self,
        handler: EventHandler,
        event_type: EventType | None = None,
    ) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: GameEvent) -> None:
        """Record an event and call its handlers, type-specific ones first."""
        self._event_history.append(event)

        for handler in list(self._handlers.get(event.event_type, [])):
            handler(event)
        for handler in list(self._handlers.get(None, [])):
            handler(event)

    def emit_new(
        self,
        event_type: EventType,
        **data: Any,
    ) -> GameEvent:
        """Build an event from keyword data, emit it and return it."""
        event = GameEvent(event_type=event_type, data=data)
        self.emit(event)
        return event

    @property
    def history(self) -> list[GameEvent]:
        """Return the retained events, oldest first."""
        return list(self._event_history)

    def history_of(self, event_type: EventType) -> list[GameEvent]:
        """Return the retained events of one type, oldest first."""
        return [e for e in self._event_history if e.event_type == event_type]

    def last(self, event_type: EventType | None = None) -> GameEvent | None:
        """Return the newest retained event, optionally of one type."""
        for event in reversed(self._event_history):
            if event_type is None or event.event_type == event_type:
                return event
        return None

    def clear_history(self) -> None:
        """Clear the event history."""
        self._event_history.clear()

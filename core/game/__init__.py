"""Game engine and state management."""

from core.game.events import GameEvent, EventType, EventEmitter
from core.game.state import GamePhase, GameOutcome
from core.game.engine import HiLoGame, PredictionResult, is_correct_prediction

__all__ = [
    "GameEvent",
    "EventType",
    "EventEmitter",
    "GamePhase",
    "GameOutcome",
    "HiLoGame",
    "PredictionResult",
    "is_correct_prediction",
]

"""Game phase and outcome enumerations."""

from enum import Enum, auto


class GamePhase(Enum):
    """
    Game state machine phases.

    Flow: SELECTING <-> PREDICTING -> SELECTING ... -> FINISHED,
    with PAUSED reachable from either running phase.
    """

    # Waiting for the player to pick an active slot
    SELECTING = auto()

    # A slot is selected, waiting for higher/lower
    PREDICTING = auto()

    # Gameplay commands suspended
    PAUSED = auto()

    # Deck exhausted or no active slot left
    FINISHED = auto()

    def __str__(self) -> str:
        return self.name.title()

    @property
    def is_running(self) -> bool:
        """Check if gameplay commands are accepted in this phase."""
        return self in (GamePhase.SELECTING, GamePhase.PREDICTING)


class GameOutcome(Enum):
    """How a finished game ended."""

    VICTORY = auto()
    DEFEAT = auto()

    def __str__(self) -> str:
        return self.name.title()

"""Exceptions raised by the game core."""


class HiLoGridError(Exception):
    """Base class for all game core errors."""


class EmptyDeck(HiLoGridError, IndexError):
    """Raised when drawing from a deck with no cards left."""

    def __init__(self, message: str = "Cannot draw from empty deck") -> None:
        super().__init__(message)


class InvalidTransition(HiLoGridError):
    """Raised when the phase machine is asked for a forbidden transition."""

    def __init__(self, trigger: str, phase: str) -> None:
        self.trigger = trigger
        self.phase = phase
        super().__init__(f"Cannot {trigger} while {phase}")

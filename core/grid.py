"""The 3x3 grid of face-up cards."""

from dataclasses import dataclass
from typing import Iterator

from core.cards import Card, Deck

GRID_SIZE = 3
SLOT_COUNT = GRID_SIZE * GRID_SIZE


@dataclass
class GridSlot:
    """One fixed grid position holding a face-up card."""

    row: int
    col: int
    card: Card
    active: bool = True

    @property
    def position(self) -> tuple[int, int]:
        """Return the (row, col) identifier of this slot."""
        return (self.row, self.col)

    def replace_card(self, card: Card) -> Card:
        """Put a new card face up and return the one it covers."""
        previous = self.card
        self.card = card
        return previous

    def deactivate(self) -> None:
        """Permanently take this slot out of play."""
        self.active = False


@dataclass(frozen=True)
class SlotView:
    """Read-only view of a slot for presentation layers."""

    row: int
    col: int
    card: Card
    active: bool
    is_selected: bool


class Grid:
    """Exactly nine slots, dealt row-major."""

    def __init__(self, slots: list[GridSlot]) -> None:
        if len(slots) != SLOT_COUNT:
            raise ValueError(f"Grid needs {SLOT_COUNT} slots, got {len(slots)}")
        self._slots = slots

    @classmethod
    def deal(cls, deck: Deck) -> "Grid":
        """Draw one card per slot from the deck, row by row."""
        slots = [
            GridSlot(row=i // GRID_SIZE, col=i % GRID_SIZE, card=deck.draw())
            for i in range(SLOT_COUNT)
        ]
        return cls(slots)

    @staticmethod
    def in_bounds(row: int, col: int) -> bool:
        """Check if (row, col) names a grid position."""
        return 0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE

    def get(self, row: int, col: int) -> GridSlot | None:
        """Return the slot at (row, col), or None if out of range."""
        if not self.in_bounds(row, col):
            return None
        return self._slots[row * GRID_SIZE + col]

    @property
    def cards(self) -> list[Card]:
        """Return the face-up cards in row-major order."""
        return [slot.card for slot in self._slots]

    @property
    def active_slots(self) -> list[GridSlot]:
        return [slot for slot in self._slots if slot.active]

    @property
    def active_count(self) -> int:
        return sum(1 for slot in self._slots if slot.active)

    @property
    def has_active(self) -> bool:
        return any(slot.active for slot in self._slots)

    def __iter__(self) -> Iterator[GridSlot]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

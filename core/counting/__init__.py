"""Used-card tracking."""

from core.counting.used_cards import CARDS_PER_RANK, UsedCardCounts

__all__ = [
    "CARDS_PER_RANK",
    "UsedCardCounts",
]

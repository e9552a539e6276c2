"""Core Hi-Lo grid engine - 100% UI-agnostic."""

from core.cards import Card, Deck, Rank, Suit
from core.exceptions import EmptyDeck, HiLoGridError, InvalidTransition
from core.grid import Grid, GridSlot, SlotView
from core.leaderboard import Leaderboard, LeaderboardEntry

__all__ = [
    "Card",
    "Deck",
    "Rank",
    "Suit",
    "EmptyDeck",
    "HiLoGridError",
    "InvalidTransition",
    "Grid",
    "GridSlot",
    "SlotView",
    "Leaderboard",
    "LeaderboardEntry",
]

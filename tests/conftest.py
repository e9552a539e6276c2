"""Pytest fixtures for Hi-Lo grid tests."""

import pytest
from random import Random

from core.cards import Card, Deck, Rank, Suit, full_deck
from core.counting import UsedCardCounts
from core.game import HiLoGame


def card(s: str) -> Card:
    """Shorthand for Card.from_string."""
    return Card.from_string(s)


def stacked_deck(*first: str) -> Deck:
    """
    A full deck that deals the given cards first.

    Args:
        *first: Card strings in draw order (the first nine form the grid);
            the rest of the 52 follow in canonical order
    """
    head = [card(s) for s in first]
    tail = [c for c in full_deck() if c not in head]
    return Deck.from_cards(head + tail)


def next_card(game: HiLoGame) -> Card:
    """Peek at the card the next prediction will draw."""
    return next(iter(game.deck))


def call_next(game: HiLoGame, correct: bool = True) -> bool:
    """
    Select a slot whose card differs from the next one and call it.

    A differing slot always exists while all nine are active: the next
    card's rank has only three other copies.

    Args:
        game: A game waiting for a selection
        correct: Make the right call, or deliberately the wrong one
    """
    upcoming = next_card(game)
    slot = next(
        s for s in game.grid.active_slots if s.card.value != upcoming.value
    )
    game.select_slot(slot.row, slot.col)
    higher = upcoming.value > slot.card.value
    return game.predict(is_higher=higher if correct else not higher)


def play_correctly(game: HiLoGame, leave: int = 0) -> None:
    """Make correct calls until only `leave` cards remain in the deck."""
    while game.remaining_count() > leave:
        call_next(game)


# Hearts 2 through 10, dealt row-major
DEFAULT_GRID = ("2H", "3H", "4H", "5H", "6H", "7H", "8H", "9H", "10H")


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def deck(rng):
    """A shuffled deck."""
    return Deck(rng=rng)


@pytest.fixture
def used():
    """An empty used-card tally."""
    return UsedCardCounts()


@pytest.fixture
def game(rng):
    """A new game instance."""
    return HiLoGame(rng=rng)


@pytest.fixture
def make_game(rng):
    """Build a game whose deck deals the given cards first."""

    def _make(*first: str) -> HiLoGame:
        return HiLoGame(rng=rng, deck=stacked_deck(*first))

    return _make


# Hypothesis strategies for property-based testing
try:
    from hypothesis import strategies as st

    @st.composite
    def card_strategy(draw):
        """Generate a random card."""
        rank = draw(st.sampled_from(list(Rank)))
        suit = draw(st.sampled_from(list(Suit)))
        return Card(rank, suit)

    @st.composite
    def command_strategy(draw):
        """Generate a random game command as (name, args)."""
        name = draw(
            st.sampled_from(
                ["select", "select", "predict", "predict", "predict", "deselect", "pause", "resume"]
            )
        )
        if name == "select":
            return name, (draw(st.integers(-1, 3)), draw(st.integers(-1, 3)))
        if name == "predict":
            return name, (draw(st.booleans()),)
        return name, ()

except ImportError:
    pass  # hypothesis not installed

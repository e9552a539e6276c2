"""Card and Deck classes - immutable card representations."""

from dataclasses import dataclass
from enum import Enum
from random import Random
from typing import Iterable, Iterator

from core.exceptions import EmptyDeck


class Suit(Enum):
    """Card suits."""

    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"

    def __str__(self) -> str:
        symbols = {
            Suit.CLUBS: "♣",
            Suit.DIAMONDS: "♦",
            Suit.HEARTS: "♥",
            Suit.SPADES: "♠",
        }
        return symbols[self]

    @property
    def is_red(self) -> bool:
        """Check if this suit is printed in red."""
        return self in (Suit.HEARTS, Suit.DIAMONDS)


class Rank(Enum):
    """Card ranks, valued by comparison strength (Ace high)."""

    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14

    def __str__(self) -> str:
        if self.value <= 10:
            return str(self.value)
        return {
            Rank.JACK: "J",
            Rank.QUEEN: "Q",
            Rank.KING: "K",
            Rank.ACE: "A",
        }[self]

    @classmethod
    def from_label(cls, label: str) -> "Rank":
        """Look up a rank by its printed label ('2'..'10', 'J', 'Q', 'K', 'A')."""
        label = label.strip().upper()
        if label == "T":
            label = "10"
        for rank in cls:
            if str(rank) == label:
                return rank
        raise ValueError(f"Invalid rank: {label}")


@dataclass(frozen=True, slots=True)
class Card:
    """Immutable playing card."""

    rank: Rank
    suit: Suit

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        return f"Card({self.rank.name}, {self.suit.name})"

    @property
    def value(self) -> int:
        """Return the comparison strength (2 lowest, Ace 14 highest)."""
        return self.rank.value

    @property
    def id(self) -> str:
        """Return the identifier unique to this rank and suit, e.g. '10_hearts'."""
        return f"{self.rank}_{self.suit.value}"

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Create a card from a string like '2♣', 'AS', '10h'."""
        s = s.strip().upper()
        if len(s) < 2:
            raise ValueError(f"Invalid card string: {s}")

        rank_str = s[:-1]
        suit_str = s[-1]

        suit_map = {
            "C": Suit.CLUBS,
            "♣": Suit.CLUBS,
            "D": Suit.DIAMONDS,
            "♦": Suit.DIAMONDS,
            "H": Suit.HEARTS,
            "♥": Suit.HEARTS,
            "S": Suit.SPADES,
            "♠": Suit.SPADES,
        }

        if suit_str not in suit_map:
            raise ValueError(f"Invalid suit: {suit_str}")

        return cls(Rank.from_label(rank_str), suit_map[suit_str])


def full_deck() -> list[Card]:
    """Return the 52 canonical cards in suit-major order."""
    return [Card(rank, suit) for suit in Suit for rank in Rank]


class Deck:
    """A standard 52-card deck, shuffled on creation and never replenished."""

    def __init__(
        self,
        rng: Random | None = None,
        cards: Iterable[Card] | None = None,
    ) -> None:
        """
        Initialize a new deck.

        Args:
            rng: Random number generator for shuffling
            cards: Fixed draw order (first is drawn first), an arrangement of
                all 52 cards; shuffled 52 if omitted

        Raises:
            ValueError: If the cards are not each of the 52 cards exactly once
        """
        self._rng = rng or Random()
        self._cards: list[Card] = []
        if cards is None:
            self.initialize()
        else:
            ordered = list(cards)
            if len(set(ordered)) != len(ordered):
                raise ValueError("Deck cannot contain duplicate cards")
            if set(ordered) != set(full_deck()):
                raise ValueError(f"Deck must hold all 52 cards, got {len(ordered)}")
            self._cards = list(reversed(ordered))

    @classmethod
    def from_cards(cls, cards: Iterable[Card], rng: Random | None = None) -> "Deck":
        """
        Build a deck with a fixed draw order.

        Args:
            cards: All 52 cards in the order they will be drawn (first is drawn first)
            rng: Random number generator used if the deck is re-initialized

        Returns:
            A deck that deals the given cards in order
        """
        return cls(rng=rng, cards=cards)

    def initialize(self) -> None:
        """Rebuild all 52 cards and shuffle them."""
        self._cards = full_deck()
        self.shuffle()

    def shuffle(self) -> None:
        """Shuffle the remaining cards (Fisher-Yates via Random.shuffle)."""
        self._rng.shuffle(self._cards)

    def draw(self) -> Card:
        """Draw a card from the top of the deck."""
        if not self._cards:
            raise EmptyDeck()
        return self._cards.pop()

    def remaining_count(self) -> int:
        """Return the number of cards remaining."""
        return len(self._cards)

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        """Iterate remaining cards from the top of the deck down."""
        return reversed(self._cards)

"""Tally of cards that have left the deck, by rank."""

from typing import Iterable

from core.cards import Card, Rank, Suit

# Each rank appears once per suit
CARDS_PER_RANK = len(Suit)


class UsedCardCounts:
    """
    Count how many of the four cards of each rank have left the deck.

    Cards leave the deck through the initial deal and through each
    prediction draw, so the total always equals 52 minus the cards
    still in the deck.
    """

    def __init__(self) -> None:
        """Initialize with every rank at zero."""
        self._counts: dict[Rank, int] = {rank: 0 for rank in Rank}

    def record(self, card: Card) -> int:
        """
        Record a card leaving the deck.

        Args:
            card: The card drawn

        Returns:
            The new count for the card's rank
        """
        if self._counts[card.rank] >= CARDS_PER_RANK:
            raise ValueError(f"All {CARDS_PER_RANK} cards of rank {card.rank} already used")
        self._counts[card.rank] += 1
        return self._counts[card.rank]

    def record_all(self, cards: Iterable[Card]) -> None:
        """Record several cards."""
        for card in cards:
            self.record(card)

    def count(self, rank: Rank) -> int:
        """Return how many cards of a rank have been used."""
        return self._counts[rank]

    def remaining(self, rank: Rank) -> int:
        """Return how many cards of a rank are still unseen."""
        return CARDS_PER_RANK - self._counts[rank]

    def used_in(self, ranks: Iterable[Rank]) -> int:
        """Return the number of used cards across a group of ranks."""
        return sum(self._counts[rank] for rank in ranks)

    @property
    def total(self) -> int:
        """Return the number of cards used so far."""
        return sum(self._counts.values())

    def as_dict(self) -> dict[str, int]:
        """Return the counts keyed by rank label, lowest rank first."""
        return {str(rank): self._counts[rank] for rank in Rank}

    def reset(self) -> None:
        """Reset every rank to zero."""
        for rank in Rank:
            self._counts[rank] = 0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(total={self.total})"

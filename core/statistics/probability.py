"""Rank-band probabilities for the next card drawn."""

from dataclasses import dataclass
from enum import Enum

from core.cards import Rank
from core.counting import CARDS_PER_RANK, UsedCardCounts


class RankBand(Enum):
    """Groupings of ranks shown to the player."""

    LOW = "LOW"
    MID = "MID"
    HIGH = "HIGH"

    def __str__(self) -> str:
        return self.value

    @property
    def ranks(self) -> tuple[Rank, ...]:
        """Return the ranks in this band."""
        return BAND_RANKS[self]

    @property
    def population(self) -> int:
        """Return the number of cards of this band in a full deck."""
        return len(BAND_RANKS[self]) * CARDS_PER_RANK

    @classmethod
    def of(cls, rank: Rank) -> "RankBand":
        """Return the band a rank belongs to."""
        for band, ranks in BAND_RANKS.items():
            if rank in ranks:
                return band
        raise ValueError(f"Rank {rank} is in no band")


BAND_RANKS: dict[RankBand, tuple[Rank, ...]] = {
    RankBand.LOW: (Rank.TWO, Rank.THREE, Rank.FOUR, Rank.FIVE),
    RankBand.MID: (Rank.SIX, Rank.SEVEN, Rank.EIGHT, Rank.NINE),
    RankBand.HIGH: (Rank.TEN, Rank.JACK, Rank.QUEEN, Rank.KING, Rank.ACE),
}


@dataclass(frozen=True)
class GroupProbabilities:
    """Chance (as a percentage) that the next card falls in each band."""

    low: float = 0.0
    mid: float = 0.0
    high: float = 0.0

    def __post_init__(self) -> None:
        """Validate the percentages."""
        for value in (self.low, self.mid, self.high):
            if value < 0.0:
                raise ValueError(f"Probabilities must be non-negative, got {value}")
        total = self.low + self.mid + self.high
        if total > 100.0 + 1e-6:
            raise ValueError(f"Probabilities must sum to at most 100, got {total}")

    def __getitem__(self, band: RankBand) -> float:
        return self.to_dict()[band]

    def to_dict(self) -> dict[RankBand, float]:
        """Convert to a band dictionary."""
        return {
            RankBand.LOW: self.low,
            RankBand.MID: self.mid,
            RankBand.HIGH: self.high,
        }


def remaining_in_band(band: RankBand, used: UsedCardCounts) -> int:
    """Return how many cards of a band have not left the deck."""
    return band.population - used.used_in(band.ranks)


def group_probabilities(used: UsedCardCounts, deck_remaining: int) -> GroupProbabilities:
    """
    Estimate the band of the next card from what has been seen.

    Args:
        used: Cards that have left the deck, by rank
        deck_remaining: Number of cards still in the deck

    Returns:
        Percentages per band; all zero when the deck is empty
    """
    if deck_remaining <= 0:
        return GroupProbabilities()

    values = {
        band: remaining_in_band(band, used) / deck_remaining * 100
        for band in RankBand
    }
    return GroupProbabilities(
        low=values[RankBand.LOW],
        mid=values[RankBand.MID],
        high=values[RankBand.HIGH],
    )

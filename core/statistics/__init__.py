"""Statistical calculations for the Hi-Lo grid."""

from core.statistics.probability import (
    BAND_RANKS,
    GroupProbabilities,
    RankBand,
    group_probabilities,
    remaining_in_band,
)

__all__ = [
    "BAND_RANKS",
    "GroupProbabilities",
    "RankBand",
    "group_probabilities",
    "remaining_in_band",
]

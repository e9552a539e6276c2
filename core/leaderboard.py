"""Ranked list of finished-game scores (fewer cards left is better)."""

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Iterator

MAX_ENTRIES = 10
DEFAULT_NAME = "Anonymous"


@dataclass(frozen=True)
class LeaderboardEntry:
    """One ranked score."""

    name: str
    score: int
    date: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LeaderboardEntry":
        return cls(
            name=str(data.get("name") or DEFAULT_NAME),
            score=int(data["score"]),
            date=str(data.get("date", "")),
        )


class Leaderboard:
    """
    The best scores, lowest first.

    Entries with equal scores keep their insertion order, so a new score
    ranks below existing entries it ties with.
    """

    def __init__(
        self,
        entries: list[LeaderboardEntry] | None = None,
        max_entries: int = MAX_ENTRIES,
        default_name: str = DEFAULT_NAME,
    ) -> None:
        """
        Initialize a leaderboard.

        Args:
            entries: Existing entries (re-sorted and truncated)
            max_entries: How many entries to keep
            default_name: Name used when a blank one is submitted
        """
        if max_entries < 1:
            raise ValueError("Leaderboard must keep at least 1 entry")
        self._max_entries = max_entries
        self._default_name = default_name
        self._entries: list[LeaderboardEntry] = list(entries or [])
        self._rank()

    def _rank(self) -> None:
        # list.sort is stable
        self._entries.sort(key=lambda e: e.score)
        del self._entries[self._max_entries:]

    def qualifies(self, score: int) -> bool:
        """Check if a score would make the board."""
        if len(self._entries) < self._max_entries:
            return True
        return score < self._entries[-1].score

    def add(self, name: str, score: int, entry_date: str | None = None) -> int | None:
        """
        Add a score.

        Args:
            name: Player name (blank becomes the default name)
            score: Cards left in the deck when the game ended
            entry_date: ISO date string, today if omitted

        Returns:
            Index of the new entry, or None if it did not make the board
        """
        if score < 0:
            raise ValueError(f"Score cannot be negative, got {score}")

        entry = LeaderboardEntry(
            name=name.strip() or self._default_name,
            score=score,
            date=entry_date or date.today().isoformat(),
        )
        self._entries.append(entry)
        self._rank()

        for index, existing in enumerate(self._entries):
            if existing is entry:
                return index
        return None

    def remove(self, index: int) -> LeaderboardEntry:
        """Remove and return the entry at index."""
        if not 0 <= index < len(self._entries):
            raise IndexError(f"No leaderboard entry at index {index}")
        return self._entries.pop(index)

    @property
    def entries(self) -> list[LeaderboardEntry]:
        """Return the ranked entries."""
        return self._entries.copy()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def to_list(self) -> list[dict[str, Any]]:
        """Serialize for storage."""
        return [entry.to_dict() for entry in self._entries]

    @classmethod
    def from_list(
        cls,
        data: list[dict[str, Any]],
        max_entries: int = MAX_ENTRIES,
        default_name: str = DEFAULT_NAME,
    ) -> "Leaderboard":
        """Restore from storage."""
        return cls(
            entries=[LeaderboardEntry.from_dict(d) for d in data],
            max_entries=max_entries,
            default_name=default_name,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LeaderboardEntry]:
        return iter(self._entries)

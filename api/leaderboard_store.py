"""Leaderboard persistence: in-memory, JSON file, or Redis."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from api.session import REDIS_AVAILABLE
from config import config
from core.leaderboard import Leaderboard

if REDIS_AVAILABLE:
    import redis.asyncio as redis

logger = logging.getLogger(__name__)


class LeaderboardStore(ABC):
    """Abstract leaderboard store holding the serialized entry list."""

    @abstractmethod
    async def load_entries(self) -> list[dict[str, Any]]:
        """Load the raw entry list."""
        ...

    @abstractmethod
    async def save_entries(self, entries: list[dict[str, Any]]) -> None:
        """Replace the stored entry list."""
        ...

    async def load(self) -> Leaderboard:
        """Load the leaderboard."""
        return Leaderboard.from_list(
            await self.load_entries(),
            max_entries=config.game.leaderboard_size,
            default_name=config.game.default_player_name,
        )

    async def save(self, leaderboard: Leaderboard) -> None:
        """Save the leaderboard."""
        await self.save_entries(leaderboard.to_list())


class InMemoryLeaderboardStore(LeaderboardStore):
    """Leaderboard kept in process memory."""

    def __init__(self) -> None:
        self._entries: list[dict[str, Any]] = []

    async def load_entries(self) -> list[dict[str, Any]]:
        return [dict(e) for e in self._entries]

    async def save_entries(self, entries: list[dict[str, Any]]) -> None:
        self._entries = [dict(e) for e in entries]


class FileLeaderboardStore(LeaderboardStore):
    """Leaderboard stored as a JSON array in a file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Leaderboard file %s is corrupt, starting empty", self._path)
            return []
        return data if isinstance(data, list) else []

    def _write(self, entries: list[dict[str, Any]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(entries, indent=2), encoding="utf-8")
        tmp.replace(self._path)

    async def load_entries(self) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._read)

    async def save_entries(self, entries: list[dict[str, Any]]) -> None:
        await asyncio.to_thread(self._write, entries)


class RedisLeaderboardStore(LeaderboardStore):
    """Leaderboard stored as a JSON string under one Redis key."""

    def __init__(self, redis_client: "redis.Redis", key: str) -> None:  # type: ignore
        self._redis = redis_client
        self._key = key

    async def load_entries(self) -> list[dict[str, Any]]:
        data = await self._redis.get(self._key)
        if data is None:
            return []
        return json.loads(data)

    async def save_entries(self, entries: list[dict[str, Any]]) -> None:
        await self._redis.set(self._key, json.dumps(entries))


# Global leaderboard store instance
_leaderboard_store: LeaderboardStore | None = None

# Serializes read-modify-write cycles on the leaderboard
leaderboard_lock = asyncio.Lock()


async def get_leaderboard_store() -> LeaderboardStore:
    """Get or create the configured leaderboard store."""
    global _leaderboard_store

    if _leaderboard_store is not None:
        return _leaderboard_store

    backend = config.leaderboard.backend
    if backend == "redis" and REDIS_AVAILABLE:
        try:
            redis_client = redis.from_url(config.redis.url)
            await redis_client.ping()
            _leaderboard_store = RedisLeaderboardStore(redis_client, config.leaderboard.redis_key)
            return _leaderboard_store
        except Exception as e:
            logger.warning("Redis unavailable (%s), keeping leaderboard in memory", e)
    elif backend == "file":
        _leaderboard_store = FileLeaderboardStore(config.leaderboard.path)
        logger.info("Leaderboard file: %s", _leaderboard_store.path)
        return _leaderboard_store

    _leaderboard_store = InMemoryLeaderboardStore()
    return _leaderboard_store


def set_leaderboard_store(store: LeaderboardStore | None) -> None:
    """Replace the global leaderboard store (None re-reads the configuration)."""
    global _leaderboard_store
    _leaderboard_store = store

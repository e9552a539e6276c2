"""Player sessions: signed tokens plus per-session play metadata.

A session records when it was opened, how many games it started and won,
its best (lowest) score and which game it last put on the leaderboard.
Games in progress live in process memory and are never written to the
store, so a restart of the service ends them.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any
from uuid import uuid4

try:
    import redis.asyncio as redis

    REDIS_AVAILABLE = True
except ImportError:
    REDIS_AVAILABLE = False

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from config import config

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(time.time())


@dataclass(frozen=True)
class SessionMeta:
    """What the service remembers about one player session."""

    created_at: int = field(default_factory=_now)
    last_activity: int = field(default_factory=_now)
    games_started: int = 0
    games_won: int = 0
    best_score: int | None = None
    submitted_game_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionMeta":
        """Build from stored data, ignoring keys this version does not know."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class SessionSigner:
    """Sign and verify session tokens using itsdangerous."""

    def __init__(self, secret_key: str | None = None) -> None:
        self._serializer = URLSafeTimedSerializer(
            secret_key or config.security.secret_key, salt="hilo-session"
        )

    def sign(self, session_id: str) -> str:
        """Create a signed token from a raw session ID."""
        return self._serializer.dumps(session_id)

    def unsign(self, token: str, max_age: int | None = None) -> str | None:
        """
        Verify a token and extract its raw session ID.

        Args:
            token: The signed token to verify
            max_age: Maximum age in seconds (defaults to session_ttl)

        Returns:
            The raw session ID if valid, None otherwise
        """
        try:
            return self._serializer.loads(token, max_age=max_age or config.session_ttl)
        except (BadSignature, SignatureExpired):
            return None


_session_signer: SessionSigner | None = None


def get_session_signer() -> SessionSigner:
    """Get or create the process-wide signer."""
    global _session_signer
    if _session_signer is None:
        _session_signer = SessionSigner()
    return _session_signer


class SessionStore(ABC):
    """Key-value store for serialized session metadata with expiry."""

    @abstractmethod
    async def get(self, session_id: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    async def set(self, session_id: str, data: dict[str, Any], ttl: int | None = None) -> None:
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        ...


class InMemorySessionStore(SessionStore):
    """Session store for a single process, with lazy expiry."""

    def __init__(self) -> None:
        # token -> (data, monotonic expiry)
        self._sessions: dict[str, tuple[dict[str, Any], float]] = {}

    async def get(self, session_id: str) -> dict[str, Any] | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None

        data, expiry = entry
        if expiry < time.monotonic():
            del self._sessions[session_id]
            return None
        return dict(data)

    async def set(
        self,
        session_id: str,
        data: dict[str, Any],
        ttl: int | None = None,
    ) -> None:
        expiry = time.monotonic() + (ttl or config.session_ttl)
        self._sessions[session_id] = (dict(data), expiry)

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def cleanup_expired(self) -> int:
        """Drop expired sessions and return how many went."""
        now = time.monotonic()
        expired = [sid for sid, (_, expiry) in self._sessions.items() if expiry < now]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore(SessionStore):
    """Session store keeping one JSON string per session, expired by Redis."""

    PREFIX = "hilo:session:"

    def __init__(self, redis_client: "redis.Redis") -> None:  # type: ignore
        self._redis = redis_client

    def _key(self, session_id: str) -> str:
        return f"{self.PREFIX}{session_id}"

    async def get(self, session_id: str) -> dict[str, Any] | None:
        data = await self._redis.get(self._key(session_id))
        if data is None:
            return None
        return json.loads(data)

    async def set(
        self,
        session_id: str,
        data: dict[str, Any],
        ttl: int | None = None,
    ) -> None:
        await self._redis.setex(
            self._key(session_id), ttl or config.session_ttl, json.dumps(data)
        )

    async def delete(self, session_id: str) -> None:
        await self._redis.delete(self._key(session_id))


_session_store: SessionStore | None = None


async def get_session_store() -> SessionStore:
    """Get the session store, connecting to Redis on first use if it answers."""
    global _session_store

    if _session_store is not None:
        return _session_store

    if REDIS_AVAILABLE:
        try:
            redis_client = redis.from_url(config.redis.url)
            await redis_client.ping()
            _session_store = RedisSessionStore(redis_client)
            logger.info("Using Redis session store at %s", config.redis.host)
            return _session_store
        except Exception as e:
            logger.warning("Redis unavailable (%s), using in-memory sessions", e)

    _session_store = InMemorySessionStore()
    return _session_store


async def create_session() -> str:
    """Open a new session and return its signed token."""
    store = await get_session_store()
    token = get_session_signer().sign(uuid4().hex)
    await store.set(token, SessionMeta().to_dict())
    logger.info("Opened session")
    return token


async def get_session(token: str) -> SessionMeta | None:
    """Load a session's metadata, or None if it is unknown or expired."""
    store = await get_session_store()
    data = await store.get(token)
    return SessionMeta.from_dict(data) if data is not None else None


async def update_session(token: str, **changes: Any) -> SessionMeta:
    """
    Apply changes to a session and mark it active now.

    A session that expired from the store while its token is still valid is
    recreated from the changes.

    Args:
        token: The signed session token
        **changes: SessionMeta fields to overwrite

    Returns:
        The stored metadata
    """
    store = await get_session_store()
    current = await get_session(token) or SessionMeta()
    meta = replace(current, last_activity=_now(), **changes)
    await store.set(token, meta.to_dict())
    return meta


async def record_game_started(token: str) -> SessionMeta:
    """Count a newly dealt game."""
    meta = await get_session(token) or SessionMeta()
    return await update_session(token, games_started=meta.games_started + 1)


async def record_game_result(token: str, won: bool, score: int) -> SessionMeta:
    """Fold a finished game into the win count and best score."""
    meta = await get_session(token) or SessionMeta()
    best = score if meta.best_score is None else min(meta.best_score, score)
    return await update_session(
        token,
        games_won=meta.games_won + (1 if won else 0),
        best_score=best,
    )


async def delete_session(token: str) -> None:
    store = await get_session_store()
    await store.delete(token)


def extract_session_id(token: str) -> str | None:
    """Return the raw session ID inside a token, or None if it is forged or stale."""
    return get_session_signer().unsign(token)

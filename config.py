"""Configuration management with environment variable support."""

import os
import secrets
from dataclasses import dataclass, field
from typing import Literal


def _parse_cors_origins() -> list[str]:
    """Parse CORS_ORIGINS environment variable."""
    origins = os.getenv("CORS_ORIGINS", "http://localhost:8000")
    return [o.strip() for o in origins.split(",") if o.strip()]


def _parse_seed() -> int | None:
    """Parse HILO_SEED environment variable."""
    seed = os.getenv("HILO_SEED", "").strip()
    return int(seed) if seed else None


def _parse_leaderboard_backend() -> Literal["memory", "file", "redis"]:
    """Parse LEADERBOARD_BACKEND environment variable."""
    backend = os.getenv("LEADERBOARD_BACKEND", "memory").strip().lower()
    if backend not in ("memory", "file", "redis"):
        raise ValueError(f"Unknown leaderboard backend: {backend}")
    return backend  # type: ignore[return-value]


@dataclass(frozen=True)
class CORSConfig:
    """CORS configuration."""

    allowed_origins: list[str] = field(default_factory=_parse_cors_origins)
    allow_credentials: bool = True
    allow_methods: list[str] = field(default_factory=lambda: ["*"])
    allow_headers: list[str] = field(default_factory=lambda: ["*"])


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate limiting configuration."""

    enabled: bool = field(
        default_factory=lambda: os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    )
    requests_per_minute: int = field(
        default_factory=lambda: int(os.getenv("RATE_LIMIT_RPM", "60"))
    )


@dataclass(frozen=True)
class SecurityConfig:
    """Security configuration."""

    secret_key: str = field(
        default_factory=lambda: os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    )


@dataclass(frozen=True)
class RedisConfig:
    """Redis connection configuration."""

    host: str = field(default_factory=lambda: os.getenv("REDIS_HOST", "localhost"))
    port: int = field(default_factory=lambda: int(os.getenv("REDIS_PORT", "6379")))
    db: int = field(default_factory=lambda: int(os.getenv("REDIS_DB", "0")))
    password: str | None = field(default_factory=lambda: os.getenv("REDIS_PASSWORD"))

    @property
    def url(self) -> str:
        """Build Redis connection URL."""
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


@dataclass(frozen=True)
class GameConfig:
    """Default game configuration."""

    seed: int | None = field(default_factory=_parse_seed)
    leaderboard_size: int = 10
    default_player_name: str = "Anonymous"


@dataclass(frozen=True)
class LeaderboardConfig:
    """Leaderboard storage configuration."""

    backend: Literal["memory", "file", "redis"] = field(
        default_factory=_parse_leaderboard_backend
    )
    path: str = field(
        default_factory=lambda: os.getenv("LEADERBOARD_PATH", "leaderboard.json")
    )
    redis_key: str = "hilo:leaderboard"


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    session_ttl: int = 3600  # Session timeout in seconds

    redis: RedisConfig = field(default_factory=RedisConfig)
    game: GameConfig = field(default_factory=GameConfig)
    leaderboard: LeaderboardConfig = field(default_factory=LeaderboardConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global configuration instance
config = AppConfig()

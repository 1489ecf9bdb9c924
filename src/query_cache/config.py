import os
from dataclasses import dataclass
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()

# Defaults used by the restaurant voice agent
DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60  # 7 days
DEFAULT_MAX_SIZE = 10
DEFAULT_FUZZY_THRESHOLD = 0.8

_BACKENDS = ("file", "redis", "memory")


def _parse_stopwords(raw: str | None) -> tuple[str, ...] | None:
    """Parse a comma-separated stopword override, or None when unset."""
    if not raw:
        return None
    words = [word.strip().lower() for word in raw.split(",")]
    return tuple(word for word in words if word)


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Cache
    cache_ttl: int = int(os.getenv("QUERY_CACHE_TTL", str(DEFAULT_TTL_SECONDS)))
    cache_max_size: int = int(os.getenv("QUERY_CACHE_MAX_SIZE", str(DEFAULT_MAX_SIZE)))
    cache_fuzzy_threshold: float = float(
        os.getenv("QUERY_CACHE_FUZZY_THRESHOLD", str(DEFAULT_FUZZY_THRESHOLD))
    )
    cache_stopwords: tuple[str, ...] | None = _parse_stopwords(os.getenv("QUERY_CACHE_STOPWORDS"))

    # Persistence
    cache_backend: str = os.getenv("QUERY_CACHE_BACKEND", "file").lower()
    cache_file: str = os.getenv("QUERY_CACHE_FILE", "data/rag-query-cache.json")
    cache_key: str = os.getenv("QUERY_CACHE_KEY", "query_cache:document")

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_ttl <= 0:
            raise ValueError("QUERY_CACHE_TTL must be a positive number of seconds")

        if self.cache_max_size < 1:
            raise ValueError("QUERY_CACHE_MAX_SIZE must be at least 1")

        if not 0 <= self.cache_fuzzy_threshold <= 1:
            raise ValueError("QUERY_CACHE_FUZZY_THRESHOLD must be between 0 and 1")

        if self.cache_backend not in _BACKENDS:
            raise ValueError(
                f"QUERY_CACHE_BACKEND must be one of {list(_BACKENDS)}, got {self.cache_backend!r}"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client(config: Settings | None = None) -> redis.Redis:
    """Create a Redis client instance."""
    config = config or settings
    return redis.from_url(
        config.redis_url,
        password=config.redis_password,
        decode_responses=True,
    )

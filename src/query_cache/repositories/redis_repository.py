"""Redis implementation of CacheDocumentStore.

The whole cache document is stored as one JSON string under a single key.
Read-modify-write cycles are serialized across processes with a Redis lock
named after that key.
"""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import redis
import structlog
from redis.exceptions import LockError, RedisError

from query_cache.config import get_redis_client, settings
from query_cache.exceptions import StorageCorruptError, StorageError, StorageWriteError

logger = structlog.get_logger(__name__)


class RedisDocumentStore:
    """Redis implementation using a single JSON document key.

    This class satisfies the CacheDocumentStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        key: str | None = None,
        lock_timeout: float = 10.0,
        blocking_timeout: float = 5.0,
    ) -> None:
        """Initialize the Redis document store.

        Args:
            redis_client: Redis client instance. If None, creates default.
            key: Redis key holding the document. Defaults to settings.
            lock_timeout: Seconds after which a held lock auto-expires.
            blocking_timeout: Seconds to wait for the lock before giving up.
        """
        self._client = redis_client or get_redis_client()
        self._key = key or settings.cache_key
        self._lock_timeout = lock_timeout
        self._blocking_timeout = blocking_timeout

    @classmethod
    def create(cls, key: str | None = None) -> "RedisDocumentStore":
        """Factory method to create RedisDocumentStore with defaults.

        Args:
            key: Redis key for the document. If None, uses settings.

        Returns:
            Configured RedisDocumentStore
        """
        return cls(key=key)

    def load(self) -> dict[str, Any] | None:
        """Fetch and parse the document.

        Returns:
            The parsed document, or None if the key does not exist
        """
        try:
            raw = self._client.get(self._key)
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
        except RedisError as e:
            raise StorageError(f"Cannot read {self._key} from Redis: {e}") from e
        except UnicodeDecodeError as e:
            # decode_responses clients raise this from get() itself
            raise StorageCorruptError(f"Redis key {self._key} is not valid UTF-8: {e}") from e

        if raw is None:
            return None

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageCorruptError(f"Redis key {self._key} is not valid JSON: {e}") from e

        if not isinstance(document, dict):
            raise StorageCorruptError(f"Redis key {self._key} does not hold a JSON object")
        return document

    def save(self, document: dict[str, Any]) -> None:
        """Overwrite the document key.

        Args:
            document: JSON-serializable cache document
        """
        try:
            payload = json.dumps(document)
        except (TypeError, ValueError) as e:
            raise StorageWriteError(f"Document is not JSON-serializable: {e}") from e

        try:
            self._client.set(self._key, payload)
        except RedisError as e:
            raise StorageWriteError(f"Cannot write {self._key} to Redis: {e}") from e

    @contextmanager
    def lock(self) -> Iterator[Any]:
        """Hold the distributed lock for one read-modify-write cycle."""
        lock = self._client.lock(
            f"{self._key}:lock",
            timeout=self._lock_timeout,
            blocking_timeout=self._blocking_timeout,
        )
        try:
            acquired = lock.acquire()
        except RedisError as e:
            raise StorageError(f"Cannot acquire lock for {self._key}: {e}") from e
        if not acquired:
            raise StorageError(f"Timed out waiting for lock on {self._key}")

        try:
            yield lock
        finally:
            try:
                lock.release()
            except LockError:
                # Lock expired while held; another writer may have taken over
                logger.warning("cache_lock_release_failed", key=self._key)

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except RedisError:
            return False

    def describe(self) -> dict[str, Any]:
        return {"backend": "redis", "key": self._key}

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client

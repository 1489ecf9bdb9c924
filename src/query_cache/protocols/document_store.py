"""Cache document storage protocol.

Defines the persistence surface of the query cache: a single
JSON-serializable document that is loaded whole and overwritten whole.

Implementations can include:
- Redis (one string key holding the JSON document)
- A flat JSON file on disk (default)
- An in-memory dict (tests)
- Any key-value store that can hold one document
"""

from contextlib import AbstractContextManager
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CacheDocumentStore(Protocol):
    """Protocol for cache document backends.

    Any type that implements these methods satisfies the protocol, no
    explicit inheritance needed.

    Example:
        ```python
        from query_cache.protocols import CacheDocumentStore

        store: CacheDocumentStore = JsonFileDocumentStore("data/cache.json")
        store: CacheDocumentStore = RedisDocumentStore.create()
        ```
    """

    def load(self) -> dict[str, Any] | None:
        """Load the whole document.

        Returns:
            The parsed document, or None when nothing has been persisted yet

        Raises:
            StorageCorruptError: If the document exists but cannot be parsed
            StorageError: If the backend cannot be reached
        """
        ...

    def save(self, document: dict[str, Any]) -> None:
        """Overwrite the whole document.

        Args:
            document: JSON-serializable cache document

        Raises:
            StorageWriteError: If the document cannot be persisted
        """
        ...

    def lock(self) -> AbstractContextManager[Any]:
        """Mutual exclusion for one read-modify-write cycle.

        Returns:
            Context manager held for the duration of a cache operation

        Raises:
            StorageError: If the lock cannot be acquired
        """
        ...

    def health_check(self) -> bool:
        """Check if the backend is accessible.

        Returns:
            True if healthy, False otherwise
        """
        ...

    def describe(self) -> dict[str, Any]:
        """Describe the backend for status reports.

        Returns:
            Dictionary with backend name and location
        """
        ...

"""In-memory implementation of CacheDocumentStore.

Keeps the document as a JSON string so every load returns an independent
copy and non-serializable payloads fail the same way they would against a
real backend. Intended for tests and single-process experiments.
"""

import json
import threading
from contextlib import AbstractContextManager
from typing import Any

from query_cache.exceptions import StorageCorruptError, StorageWriteError


class InMemoryDocumentStore:
    """String-backed document store.

    This class satisfies the CacheDocumentStore protocol through structural
    typing.
    """

    def __init__(self, raw: str | None = None) -> None:
        """Initialize the store.

        Args:
            raw: Optional pre-serialized document (useful for corruption tests).
        """
        self._raw = raw
        self._lock = threading.RLock()

    def load(self) -> dict[str, Any] | None:
        if self._raw is None:
            return None
        try:
            return json.loads(self._raw)
        except json.JSONDecodeError as e:
            raise StorageCorruptError(f"In-memory document is not valid JSON: {e}") from e

    def save(self, document: dict[str, Any]) -> None:
        try:
            self._raw = json.dumps(document)
        except (TypeError, ValueError) as e:
            raise StorageWriteError(f"Document is not JSON-serializable: {e}") from e

    def lock(self) -> AbstractContextManager[bool]:
        return self._lock

    def health_check(self) -> bool:
        return True

    def describe(self) -> dict[str, Any]:
        return {"backend": "memory"}

    @property
    def raw(self) -> str | None:
        """The serialized document (for testing)."""
        return self._raw

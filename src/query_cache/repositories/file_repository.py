"""JSON flat-file implementation of CacheDocumentStore.

The cache document lives in a single pretty-printed JSON file. Writes go
to a sibling temporary file that is then renamed over the original.
"""

import json
import os
import tempfile
import threading
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any

import structlog

from query_cache.config import settings
from query_cache.exceptions import StorageCorruptError, StorageError, StorageWriteError

logger = structlog.get_logger(__name__)


class JsonFileDocumentStore:
    """File implementation of the cache document store.

    This class satisfies the CacheDocumentStore protocol through structural
    typing. Mutual exclusion covers threads of one process only.
    """

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        """Initialize the file store.

        Args:
            path: Location of the JSON document. Defaults to settings.
        """
        self._path = Path(path or settings.cache_file)
        self._lock = threading.RLock()

    @classmethod
    def create(cls, path: str | os.PathLike[str] | None = None) -> "JsonFileDocumentStore":
        """Factory method to create JsonFileDocumentStore with defaults.

        Args:
            path: Document location. If None, uses settings.

        Returns:
            Configured JsonFileDocumentStore
        """
        return cls(path=path)

    def load(self) -> dict[str, Any] | None:
        """Read and parse the document file.

        Returns:
            The parsed document, or None if the file does not exist yet
        """
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise StorageCorruptError(f"Cache file {self._path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise StorageError(f"Cannot read cache file {self._path}: {e}") from e

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageCorruptError(f"Cache file {self._path} is not valid JSON: {e}") from e

        if not isinstance(document, dict):
            raise StorageCorruptError(f"Cache file {self._path} does not hold a JSON object")
        return document

    def save(self, document: dict[str, Any]) -> None:
        """Atomically overwrite the document file.

        Args:
            document: JSON-serializable cache document
        """
        try:
            payload = json.dumps(document, indent=2)
        except (TypeError, ValueError) as e:
            raise StorageWriteError(f"Document is not JSON-serializable: {e}") from e

        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            raise StorageWriteError(f"Cannot write cache file {self._path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("cache_tmp_cleanup_failed", path=tmp_name)

    def lock(self) -> AbstractContextManager[bool]:
        """Process-local lock around one read-modify-write cycle."""
        return self._lock

    def health_check(self) -> bool:
        """Check the document directory is writable (or creatable)."""
        directory = self._path.parent
        while not directory.exists():
            if directory.parent == directory:
                return False
            directory = directory.parent
        return os.access(directory, os.W_OK)

    def describe(self) -> dict[str, Any]:
        return {"backend": "file", "path": str(self._path)}

    @property
    def path(self) -> Path:
        """Location of the document file."""
        return self._path

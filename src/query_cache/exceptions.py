"""Error taxonomy for the query cache.

Only ``InvalidQueryError`` ever reaches a caller of the service. The
storage errors are raised by repositories and recovered inside
``QueryCacheService`` so a persistence fault never breaks the caller's
request.
"""


class QueryCacheError(Exception):
    """Base class for all query cache errors."""


class InvalidQueryError(QueryCacheError, ValueError):
    """The query is not a non-blank string."""


class StorageError(QueryCacheError):
    """The backing store could not be reached or locked."""


class StorageCorruptError(StorageError):
    """The persisted document exists but cannot be parsed."""


class StorageWriteError(StorageError):
    """The document could not be persisted after a mutation."""

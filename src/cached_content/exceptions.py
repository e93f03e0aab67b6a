"""Exceptions raised by the content cache."""


class CachedContentError(Exception):
    """Base exception for content cache errors."""


class RegistryInconsistencyError(CachedContentError):
    """Raised when a queued handle has no registered descriptor.

    This indicates the render misused the registry; a record built from such
    a registry would replay incompletely, so it is never persisted.
    """

    def __init__(self, handle: str, kind: str | None = None) -> None:
        self.handle = handle
        self.kind = kind
        where = f" in '{kind}' registry" if kind else ""
        super().__init__(f"Handle '{handle}' is queued{where} but not registered")


class MalformedRecordError(CachedContentError):
    """Raised when a cache record or stored payload has an invalid shape."""


class CacheStoreError(CachedContentError):
    """Raised when the backing key-value store fails."""

"""Search index exceptions."""


class IndexBackendError(Exception):
    """Base exception for search index errors."""


class IndexConnectionError(IndexBackendError):
    """Raised when the index cannot reach its search backend."""


class DocumentNotFoundError(IndexBackendError):
    """Raised when a requested document is not in the index."""


class QuerySyntaxError(IndexBackendError):
    """Raised when the backend cannot parse a search query."""


class IndexWriteError(IndexBackendError):
    """Raised when an upsert or delete is rejected by the backend."""


class IndexConfigurationError(IndexBackendError):
    """Raised when index configuration is invalid."""

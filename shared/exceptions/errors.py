"""Error taxonomy shared by clients, services and the HTTP layer.

Every error carries the HTTP status the API maps it to and a ``partial``
flag. ``partial`` is True only when a store mutation may or may not have
been applied (e.g. an upsert failed after a successful embed).
"""


class ServiceError(Exception):
    """Base class for all errors raised by the embedding store pipeline."""

    status_code: int = 500
    error_type: str = "service_error"

    def __init__(self, message: str, partial: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.partial = partial

    def to_dict(self) -> dict:
        """Structured failure indicator returned to API callers.

        Returns:
            dict: {"success": False, "error": ..., "detail": ..., "partial": ...}
        """
        return {
            "success": False,
            "error": self.error_type,
            "detail": self.message,
            "partial": self.partial,
        }


class InitializationError(ServiceError):
    """The embedding model could not be loaded. Fatal to embed-dependent operations."""

    status_code = 503
    error_type = "initialization_error"


class EmbeddingError(ServiceError):
    """A single embed call failed (model runtime failure or malformed output)."""

    status_code = 500
    error_type = "embedding_error"


class StoreError(ServiceError):
    """The vector index was unreachable or rejected the operation."""

    status_code = 502
    error_type = "store_error"


class ValidationError(ServiceError):
    """Caller input outside the declared constraints. Raised before any external call."""

    status_code = 400
    error_type = "validation_error"

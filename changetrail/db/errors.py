"""Storage error hierarchy.

Every read or write against the data store or the audit store that fails
is surfaced as a StorageError wrapping the backend exception.
"""


class StorageError(Exception):
    """Raised when a read or write against the store fails.

    Never swallowed by the engine: losing an audit record is worse than
    failing the mutation, so the caller decides whether to abort the
    enclosing transaction.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConnectionError(StorageError):
    """Raised when a connection to the store cannot be established."""

    pass

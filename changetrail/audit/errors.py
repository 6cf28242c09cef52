"""Audit engine error hierarchy."""


class AuditError(Exception):
    """Base exception for audit derivation errors."""

    pass


class ConfigurationError(AuditError):
    """Raised on a missing or invalid primary-key spec or table name.

    Fatal at setup; initialization should stop.
    """

    pass


class IdentityResolutionError(AuditError):
    """Raised when a row cannot be given a record identity.

    Aborts building the whole batch; partial batches are never persisted.
    """

    pass


class MissingKeyError(IdentityResolutionError):
    """Raised when a row lacks one or more configured key fields."""

    def __init__(self, table_name: str, missing_fields: list[str]) -> None:
        super().__init__(
            f"Primary key fields missing in record for table {table_name}: "
            f"{', '.join(missing_fields)}"
        )
        self.table_name = table_name
        self.missing_fields = missing_fields

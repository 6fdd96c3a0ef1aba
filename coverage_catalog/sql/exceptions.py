"""
Custom Exceptions for the Coverage Catalog.

Provides a hierarchy of catalog exceptions separating data-integrity
failures (records that contradict the catalog schema) from backend-state
failures (the store did not behave as an insert reported).
"""


class CatalogError(Exception):
    """
    Base exception for catalog failures.

    Attributes:
        message: Human-readable error description
        details: Additional context about the failure
    """

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class IllegalRecordError(CatalogError):
    """
    A record in the catalog is inconsistent.

    Raised for non-consecutive band numbers, missing identifiers in tree
    rows, several rows that disagree for what should be a single-valued
    key, or a reference to a record that does not exist.

    Attributes:
        table: Name of the table holding the faulty record
    """

    def __init__(self, table: str, message: str, details: dict = None):
        details = dict(details or {})
        details.setdefault("table", table)
        super().__init__(message, details)
        self.table = table


class BackendStateError(CatalogError):
    """
    The backing store is in an unexpected state.

    Raised when an insert reports an unexpected row count, or when a row
    that was just inserted cannot be found again by its own key.
    """

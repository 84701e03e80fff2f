"""Exceptions raised by search, indexing, and store operations.

Every error carries the document type, field, and document id that caused
it (when known) both as attributes and in its message.
"""

from typing import Optional


class FuzzyMatchError(Exception):
    """Base exception for fuzzy search operations."""

    def __init__(
        self,
        message: str,
        document_type: Optional[str] = None,
        field: Optional[str] = None,
        document_id: Optional[str] = None,
    ):
        self.document_type = document_type
        self.field = field
        self.document_id = document_id
        context = [
            f"{name}={value!r}"
            for name, value in (
                ("document_type", document_type),
                ("field", field),
                ("document_id", document_id),
            )
            if value is not None
        ]
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class InvalidFieldConfigurationError(FuzzyMatchError):
    """A searched field (or document type) has no n-gram configuration."""
    pass


class SizeMismatchError(FuzzyMatchError):
    """Stored n-gram size differs from the configured size for a field."""

    def __init__(
        self,
        document_type: str,
        field: str,
        document_id: str,
        stored_n: int,
        expected_n: int,
    ):
        self.stored_n = stored_n
        self.expected_n = expected_n
        super().__init__(
            f"NGram mismatch detected: stored n={stored_n}, expected n={expected_n}",
            document_type=document_type,
            field=field,
            document_id=document_id,
        )


class UnsupportedIdentifierTypeError(FuzzyMatchError):
    """A document repository uses an id type other than ``str`` or ``UUID``."""
    pass


class StoreError(FuzzyMatchError):
    """Base exception for n-gram store and document repository failures."""
    pass


class StoreConnectionError(StoreError):
    """Connection error to the backing store."""
    pass


class StoreQueryError(StoreError):
    """Query error in the backing store."""
    pass

"""
Error hierarchy for ingestion and query operations.

Ingestion-time errors are fatal to the whole run and imply that the
load transaction was rolled back. Query-time errors are fatal to the
single query call only; QueryNoSuchColumn is the recoverable kind.
"""

from typing import Optional


class JsonliteError(Exception):
    """Base exception for all jsonlite errors."""
    pass


class IngestError(JsonliteError):
    """Exception raised when an ingestion run fails."""
    pass


class DecodeError(IngestError):
    """Malformed input token in the JSON stream."""

    def __init__(self, message: str, line: int, column: int, offset: int):
        super().__init__(
            f"{message} (line {line}, column {column}, offset {offset})")
        self.reason = message
        self.line = line
        self.column = column
        self.offset = offset


class SchemaError(IngestError):
    """DDL rejected by the storage engine."""

    def __init__(self, message: str, operation=None):
        super().__init__(message)
        self.operation = operation


class InsertError(IngestError):
    """Row insert rejected by the storage engine."""

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message)
        self.line = line


class QueryError(JsonliteError):
    """Query failed; previously committed data is unaffected."""
    pass


class QueryNoSuchColumn(QueryError):
    """Query referenced a column that does not exist."""

    def __init__(self, message: str, column: Optional[str] = None):
        super().__init__(message)
        self.column = column

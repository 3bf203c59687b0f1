"""
jsonlite: load newline-delimited JSON into SQLite and query it with SQL.

The table schema is discovered while reading; every new field becomes a
column and each ingestion run is committed atomically.
"""

from jsonlite.common.errors import (
    DecodeError,
    IngestError,
    InsertError,
    JsonliteError,
    QueryError,
    QueryNoSuchColumn,
    SchemaError,
)
from jsonlite.catalog.queries import is_no_such_column
from jsonlite.ingest.pipeline import IngestResult
from jsonlite.runner import QueryRunner

__version__ = "0.1.0"

__all__ = [
    "QueryRunner",
    "IngestResult",
    "is_no_such_column",
    # Errors
    "JsonliteError",
    "IngestError",
    "DecodeError",
    "SchemaError",
    "InsertError",
    "QueryError",
    "QueryNoSuchColumn",
]

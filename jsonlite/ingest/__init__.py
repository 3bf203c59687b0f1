"""
Ingest module for newline-delimited JSON.

Provides streaming decoding, value coercion, incremental schema
management and the transactional loader.
"""

from jsonlite.ingest.coercer import (
    MAX_SAFE_INTEGER,
    JsonNumber,
    StorageKind,
    canonical_json,
    coerce,
    coerce_value,
)
from jsonlite.ingest.decoder import JsonStreamDecoder, Record, decode_records
from jsonlite.ingest.schema_manager import (
    DDLKind,
    DDLOperation,
    SchemaManager,
    quote_identifier,
)
from jsonlite.ingest.loader import Loader, LoadResult, StatementCache
from jsonlite.ingest.pipeline import IngestPipeline, IngestResult

__all__ = [  # ruff: noqa: RUF022
    # Value coercion
    "MAX_SAFE_INTEGER",
    "JsonNumber",
    "StorageKind",
    "canonical_json",
    "coerce",
    "coerce_value",
    # Decoding
    "JsonStreamDecoder",
    "Record",
    "decode_records",
    # Schema
    "DDLKind",
    "DDLOperation",
    "SchemaManager",
    "quote_identifier",
    # Loading
    "Loader",
    "LoadResult",
    "StatementCache",
    "IngestPipeline",
    "IngestResult",
]

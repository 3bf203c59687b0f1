"""
Catalog module: storage engine and read queries.
"""

from jsonlite.catalog.database import create_storage_engine, enable_transactional_ddl
from jsonlite.catalog.queries import (
    QueryFacade,
    is_no_such_column,
    missing_column,
    missing_table,
)

__all__ = [
    "create_storage_engine",
    "enable_transactional_ddl",
    "QueryFacade",
    "is_no_such_column",
    "missing_column",
    "missing_table",
]

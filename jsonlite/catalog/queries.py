"""
Read queries against committed storage.

Executes caller-supplied SQL and returns rows as dictionaries in
projection order. A reference to an unknown column is reported as
QueryNoSuchColumn so callers can choose to treat it as an empty result.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from jsonlite.common.errors import QueryError, QueryNoSuchColumn
from jsonlite.common.logging_config import PerformanceTracker
from jsonlite.common.metrics import track_query_time
from jsonlite.config.settings import Settings

logger = logging.getLogger(__name__)

NO_SUCH_COLUMN_PREFIX = "no such column:"
_NO_SUCH_COLUMN = re.compile(r"^no such column:\s*(.+?)(?: - should this be .*)?$")
_NO_SUCH_TABLE = re.compile(r"^no such table:\s*(?:main\.)?(.+)$")


def _driver_message(exc: BaseException) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig if orig is not None else exc)


def is_no_such_column(exc: BaseException) -> bool:
    """
    Whether an error means the query referenced a nonexistent column.

    Accepts QueryNoSuchColumn as well as raw SQLAlchemy or sqlite3 errors.
    """
    if isinstance(exc, QueryNoSuchColumn):
        return True
    return _driver_message(exc).startswith(NO_SUCH_COLUMN_PREFIX)


def missing_column(exc: BaseException) -> Optional[str]:
    """Name of the unknown column reported by the engine, if any."""
    match = _NO_SUCH_COLUMN.match(_driver_message(exc))
    return match.group(1).strip().strip('"') if match else None


def missing_table(exc: BaseException) -> Optional[str]:
    """Name of the unknown table reported by the engine, if any."""
    match = _NO_SUCH_TABLE.match(_driver_message(exc))
    return match.group(1).strip() if match else None


class QueryFacade:
    """
    Runs read queries against the records store.

    Until the first successful ingestion creates it, the records table
    reads as an empty table: queries failing only because it does not
    exist yet return no rows.
    """

    def __init__(self, engine: Engine, table_name: str = "records", settings: Optional[Settings] = None):
        """
        Initialize query facade.

        Args:
            engine: Engine of the store to query
            table_name: Name of the ingestion table
            settings: Settings controlling metric recording (defaults to the
                cached application settings)
        """
        self.engine = engine
        self.table_name = table_name
        self.settings = settings

    @track_query_time
    def select(self, query: str) -> List[Dict[str, Any]]:
        """
        Execute a read query.

        The statement is passed to the driver as-is; no bind parameter
        parsing is applied to the query text.

        Args:
            query: SQL query string

        Returns:
            Rows in the engine's result order, each a dict keyed by the
            projected column names in projection order

        Raises:
            QueryNoSuchColumn: The query references an unknown column
            QueryError: Any other failure
        """
        with PerformanceTracker("select", logger, logging.DEBUG):
            try:
                with self.engine.connect() as conn:
                    result = conn.exec_driver_sql(query)
                    if not result.returns_rows:
                        return []
                    keys = list(result.keys())
                    return [dict(zip(keys, row)) for row in result]
            except SQLAlchemyError as e:
                message = _driver_message(e)
                if missing_table(e) == self.table_name:
                    logger.debug(f"Table {self.table_name!r} not created yet; returning no rows")
                    return []
                if is_no_such_column(e):
                    raise QueryNoSuchColumn(message, column=missing_column(e)) from e
                raise QueryError(message) from e

    def select_or_empty(self, query: str) -> List[Dict[str, Any]]:
        """Like ``select`` but an unknown column yields no rows."""
        try:
            return self.select(query)
        except QueryNoSuchColumn as e:
            logger.info(f"Query references unknown column {e.column!r}; returning no rows")
            return []

"""
Query runner: ingest newline-delimited JSON, then query it with SQL.

Usage:
    with QueryRunner() as runner:
        runner.read(sys.stdin.buffer)
        rows = runner.select("SELECT * FROM records WHERE level = 'error'")
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.engine import Engine

from jsonlite.catalog.database import create_storage_engine
from jsonlite.catalog.queries import QueryFacade
from jsonlite.config.settings import Settings, get_settings
from jsonlite.ingest.loader import Loader
from jsonlite.ingest.pipeline import IngestPipeline, IngestResult
from jsonlite.ingest.schema_manager import SchemaManager

logger = logging.getLogger(__name__)


class QueryRunner:
    """
    Owns one records table: its schema, its ingestion runs and its queries.

    Each ``read`` call is a separate all-or-nothing transaction that may
    extend the schema. Querying while a ``read`` is in progress is not
    supported.
    """

    def __init__(self, engine: Optional[Engine] = None, settings: Optional[Settings] = None):
        """
        Initialize runner.

        Args:
            engine: Existing SQLAlchemy engine; one is created from settings
                (and disposed on close) when omitted
            settings: Settings to use (defaults to the cached application settings)
        """
        self.settings = settings or get_settings()
        self._owns_engine = engine is None
        self.engine = engine if engine is not None else create_storage_engine(self.settings)
        self.schema = SchemaManager(self.settings.table_name)
        self.queries = QueryFacade(self.engine, self.settings.table_name, self.settings)

    @classmethod
    def from_stream(cls, stream, settings: Optional[Settings] = None) -> "QueryRunner":
        """
        Create a runner and ingest ``stream`` into it.

        The runner is closed again if ingestion fails.
        """
        runner = cls(settings=settings)
        try:
            runner.read(stream)
        except BaseException:
            runner.close()
            raise
        return runner

    @property
    def table(self) -> str:
        """Name of the table records are loaded into."""
        return self.schema.table_name

    @property
    def columns(self) -> Tuple[str, ...]:
        """Committed columns in first-seen order."""
        return self.schema.columns

    def read(self, stream) -> IngestResult:
        """
        Ingest a newline-delimited JSON stream in one transaction.

        Every JSON object must sit on a single line; a pretty-printed object
        spread over several lines is rejected with DecodeError.

        Args:
            stream: Readable binary stream

        Returns:
            IngestResult describing the committed run

        Raises:
            DecodeError, SchemaError, InsertError: The run was rolled back
        """
        pipeline = IngestPipeline(
            Loader(self.engine, self.schema, self.settings),
            queue_capacity=self.settings.queue_capacity,
            read_buffer_size=self.settings.read_buffer_size,
            poll_interval=self.settings.queue_poll_interval,
        )
        return pipeline.run(stream)

    def select(self, query: str, ignore_missing_columns: bool = False) -> List[Dict[str, Any]]:
        """
        Run a read query against committed data.

        Args:
            query: SQL query string
            ignore_missing_columns: Return no rows instead of raising
                QueryNoSuchColumn

        Returns:
            List of rows, each a dict in projection order

        Raises:
            QueryNoSuchColumn: Unknown column and ``ignore_missing_columns`` is False
            QueryError: Any other query failure
        """
        if ignore_missing_columns:
            return self.queries.select_or_empty(query)
        return self.queries.select(query)

    def close(self) -> None:
        """Dispose of the engine if this runner created it."""
        if self._owns_engine:
            self.engine.dispose()
            logger.debug(f"Disposed engine for table {self.table}")

    def __enter__(self) -> "QueryRunner":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

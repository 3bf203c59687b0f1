"""
Transactional loader for decoded records.

Runs one ingestion transaction: evolves the table schema as new fields
appear, coerces every record into bind values and inserts it through a
per-run cache of compiled INSERT statements. Any failure rolls back all
DDL and rows of the run.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause

from jsonlite.common import metrics
from jsonlite.common.errors import InsertError, SchemaError
from jsonlite.config.settings import Settings
from jsonlite.ingest.coercer import coerce_value
from jsonlite.ingest.decoder import Record
from jsonlite.ingest.schema_manager import DDLKind, DDLOperation, SchemaManager, quote_identifier

logger = logging.getLogger(__name__)


def _escape_colons(sql: str) -> str:
    # text() treats ":name" as a bind parameter, even inside identifiers
    return sql.replace(":", "\\:")


class StatementCache:
    """
    Compiled INSERT statements keyed by their exact ordered column list.

    Owned by a single load transaction and cleared when it ends.
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        self._statements: Dict[Tuple[str, ...], TextClause] = {}

    def get(self, columns: Tuple[str, ...]) -> TextClause:
        """Return the INSERT for ``columns``, building it on first use."""
        statement = self._statements.get(columns)
        if statement is None:
            statement = self._build(columns)
            self._statements[columns] = statement
        return statement

    def _build(self, columns: Tuple[str, ...]) -> TextClause:
        table = quote_identifier(self.table_name)
        if not columns:
            return text(_escape_colons(f"INSERT INTO {table} DEFAULT VALUES"))
        column_list = ",".join(quote_identifier(name) for name in columns)
        placeholders = ",".join(f":p{i}" for i in range(len(columns)))
        head = _escape_colons(f"INSERT INTO {table}({column_list})")
        return text(f"{head} VALUES ({placeholders})")

    def clear(self) -> None:
        self._statements.clear()

    def __len__(self) -> int:
        return len(self._statements)


@dataclass
class LoadResult:
    """Outcome of a committed load transaction."""
    rows: int = 0
    operations: List[DDLOperation] = field(default_factory=list)

    @property
    def columns_added(self) -> List[str]:
        return [name for op in self.operations for name in op.columns]


class Loader:
    """
    Loads a stream of records into the records table in one transaction.

    The schema manager is shared across runs of the same runner; a failed
    run restores it to the state it had before the run started.
    """

    def __init__(self, engine: Engine, schema: SchemaManager, settings: Optional[Settings] = None):
        """
        Initialize loader.

        Args:
            engine: Engine of the target store
            schema: Schema manager tracking the committed table
            settings: Settings controlling metric recording (defaults to the
                cached application settings)
        """
        self.engine = engine
        self.schema = schema
        self.settings = settings
        self.statements = StatementCache(schema.table_name)
        self._pending_empty = 0

    def load(self, records: Iterable[Record]) -> LoadResult:
        """
        Apply schema changes and insert all records, committing once.

        Args:
            records: Records in arrival order

        Returns:
            LoadResult with the number of rows and the DDL applied

        Raises:
            SchemaError: DDL was rejected; nothing was committed
            InsertError: An insert was rejected; nothing was committed
            Exception: Any error raised while iterating ``records``
        """
        state = self.schema.snapshot()
        result = LoadResult()
        self._pending_empty = 0
        try:
            with self.engine.connect() as conn:
                with conn.begin():
                    for record in records:
                        self._load_record(conn, record, result)
        except BaseException:
            self.schema.restore(state)
            raise
        finally:
            self.statements.clear()

        if self._pending_empty:
            logger.warning(
                f"Dropped {self._pending_empty} empty records: no field ever created the table")
        self._record_metrics(result)
        logger.info(
            f"Committed {result.rows} rows to {self.schema.table_name}",
            extra={"extra_fields": {
                "rows": result.rows,
                "columns_added": result.columns_added,
                "columns": len(self.schema.columns),
            }},
        )
        return result

    def _load_record(self, conn: Connection, record: Record, result: LoadResult) -> None:
        created_table = False
        for operation in self.schema.plan(record):
            self._apply_ddl(conn, operation)
            result.operations.append(operation)
            created_table = created_table or operation.kind == DDLKind.CREATE_TABLE

        if not self.schema.has_table:
            self._pending_empty += 1
            return

        if created_table and self._pending_empty:
            for _ in range(self._pending_empty):
                self._insert(conn, (), {}, record.line)
            result.rows += self._pending_empty
            self._pending_empty = 0

        columns = self.schema.columns
        values = {
            f"p{i}": coerce_value(record.get(name))
            for i, name in enumerate(columns)
        }
        self._insert(conn, columns, values, record.line)
        result.rows += 1

    def _apply_ddl(self, conn: Connection, operation: DDLOperation) -> None:
        try:
            conn.exec_driver_sql(operation.sql)
        except SQLAlchemyError as e:
            raise SchemaError(
                f"Failed to {operation.kind.value.replace('_', ' ')} "
                f"{list(operation.columns)}: {getattr(e, 'orig', e)}",
                operation=operation,
            ) from e
        self.schema.apply(operation)
        logger.debug(f"Applied DDL: {operation.sql}")

    def _insert(self, conn: Connection, columns: Tuple[str, ...], values: Dict[str, Any], line: int) -> None:
        statement = self.statements.get(columns)
        try:
            conn.execute(statement, values)
        except SQLAlchemyError as e:
            raise InsertError(
                f"Failed to insert record from line {line}: {getattr(e, 'orig', e)}",
                line=line,
            ) from e

    def _record_metrics(self, result: LoadResult) -> None:
        if not metrics.metrics_enabled(self.settings):
            return
        metrics.records_ingested_total.inc(result.rows)
        for operation in result.operations:
            metrics.ddl_operations_total.labels(kind=operation.kind.value).inc()
        metrics.schema_columns.set(len(self.schema.columns))

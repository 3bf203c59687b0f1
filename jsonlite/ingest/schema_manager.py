"""
Incremental schema tracking for the records table.

Tracks the columns known to the current table and turns newly seen
field names into CREATE TABLE / ALTER TABLE ADD statements. Columns are
untyped (schema-on-read) and never removed, renamed or retyped.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Set, Tuple

logger = logging.getLogger(__name__)


class DDLKind(str, Enum):
    """Kinds of schema change emitted during ingestion."""
    CREATE_TABLE = "create_table"
    ADD_COLUMN = "add_column"


@dataclass(frozen=True)
class DDLOperation:
    """One schema change and the SQL that applies it."""
    kind: DDLKind
    columns: Tuple[str, ...]
    sql: str


def quote_identifier(name: str) -> str:
    """
    Quote a field name as a SQL identifier.

    The name is used verbatim; only embedded double quotes are doubled.
    Its character content is not validated.
    """
    return '"' + name.replace('"', '""') + '"'


def _looks_unsafe(name: str) -> bool:
    return name == "" or '"' in name or any(ord(c) < 0x20 for c in name)


class SchemaManager:
    """
    Tracks the ordered column set of one table.

    Columns are ordered by the first record in which each field appeared.
    The first record with any fields creates the table; later records add
    one column per new field.
    """

    def __init__(self, table_name: str = "records"):
        """
        Initialize schema manager.

        Args:
            table_name: Name of the table whose schema is tracked
        """
        self.table_name = table_name
        self._columns: List[str] = []
        self._known: Set[str] = set()
        self._has_table = False

    @property
    def columns(self) -> Tuple[str, ...]:
        """Known columns in first-seen order."""
        return tuple(self._columns)

    @property
    def has_table(self) -> bool:
        return self._has_table

    def new_fields(self, fields: Iterable[str]) -> List[str]:
        """
        Field names not yet known as columns, in the given order.

        Args:
            fields: Field names of a record

        Returns:
            List of unseen field names without duplicates
        """
        added: List[str] = []
        seen: Set[str] = set()
        for name in fields:
            if name in self._known or name in seen:
                continue
            seen.add(name)
            added.append(name)
        return added

    def plan(self, fields: Iterable[str]) -> List[DDLOperation]:
        """
        Compute the DDL required before a record can be inserted.

        Does not change the tracked schema; call ``apply`` once each
        operation has been executed successfully.

        Args:
            fields: Field names of the next record

        Returns:
            A single CREATE TABLE operation when no table exists yet,
            otherwise one ADD COLUMN operation per new field. Empty when
            the record introduces nothing new.
        """
        added = self.new_fields(fields)
        if not added:
            return []

        for name in added:
            if _looks_unsafe(name):
                logger.warning(
                    f"Field name {name!r} is used verbatim as a column identifier")

        if not self._has_table:
            column_defs = ",".join(quote_identifier(name) for name in added)
            return [DDLOperation(
                kind=DDLKind.CREATE_TABLE,
                columns=tuple(added),
                sql=f"CREATE TABLE {quote_identifier(self.table_name)}({column_defs})",
            )]

        return [
            DDLOperation(
                kind=DDLKind.ADD_COLUMN,
                columns=(name,),
                sql=(
                    f"ALTER TABLE {quote_identifier(self.table_name)} "
                    f"ADD COLUMN {quote_identifier(name)}"
                ),
            )
            for name in added
        ]

    def apply(self, operation: DDLOperation) -> None:
        """Record an executed operation in the tracked schema."""
        if operation.kind == DDLKind.CREATE_TABLE:
            self._has_table = True
        for name in operation.columns:
            if name not in self._known:
                self._known.add(name)
                self._columns.append(name)

    def column_list_sql(self) -> str:
        """Comma-joined quoted identifiers of all known columns."""
        return ",".join(quote_identifier(name) for name in self._columns)

    def snapshot(self) -> Tuple[Tuple[str, ...], bool]:
        """Capture the tracked schema so a failed run can restore it."""
        return tuple(self._columns), self._has_table

    def restore(self, state: Tuple[Tuple[str, ...], bool]) -> None:
        """Reset the tracked schema to a previous ``snapshot``."""
        columns, has_table = state
        self._columns = list(columns)
        self._known = set(columns)
        self._has_table = has_table

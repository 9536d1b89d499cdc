"""Schema extraction from ClickHouse, plus the DB-API plumbing the SQL sources share."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, ClassVar, TypeVar

import sqlalchemy
import sqlalchemy.exc

from dberd.schema import Column, Reference, Schema, Source, Table, TableColumn

_Row = tuple[Any, ...]
_S = TypeVar("_S", bound="_DbApiSource")

_TABLES_QUERY = """
    SELECT
        database,
        table,
        name,
        type,
        default_expression,
        comment,
        is_in_primary_key
    FROM system.columns
    WHERE database NOT IN ('system', 'information_schema', 'INFORMATION_SCHEMA')
    ORDER BY database, name, position;"""


def _build_column(
    name: str,
    data_type: str,
    *,
    not_null: bool = False,
    default: str | None = None,
    comment: str | None = None,
    is_primary: Any = False,
) -> Column:
    """Build a column whose definition is the type, NOT NULL and DEFAULT clauses."""
    definition = data_type
    if not_null:
        definition += " NOT NULL"
    if default:
        definition += f" DEFAULT {default}"
    return Column(
        name=name,
        definition=definition,
        comment=comment or "",
        is_primary=bool(is_primary),
    )


def _group_columns(entries: Iterable[tuple[str, Column]]) -> list[Table]:
    """Collect (table name, column) pairs into tables, in first-seen order."""
    tables: dict[str, Table] = {}
    for key, column in entries:
        table = tables.get(key)
        if table is None:
            table = tables[key] = Table(key)
        table.columns.append(column)
    return list(tables.values())


def _references_from_rows(rows: Iterable[_Row]) -> list[Reference]:
    """Turn six-field foreign key rows into references between schema-qualified tables."""
    return [
        Reference(
            source=TableColumn(f"{src_schema}.{src_table}", src_column),
            target=TableColumn(f"{tgt_schema}.{tgt_table}", tgt_column),
        )
        for src_schema, src_table, src_column, tgt_schema, tgt_table, tgt_column in rows
    ]


class _DbApiSource(Source):
    """A schema source that runs catalogue queries over a DB-API connection."""

    _tables_query: ClassVar[str]
    _references_query: ClassVar[str | None] = None
    _rows_to_tables: ClassVar[Callable[[Iterable[_Row]], list[Table]]]
    _rows_to_references: ClassVar[Callable[[Iterable[_Row]], list[Reference]]] = staticmethod(
        _references_from_rows
    )
    _parse_error: ClassVar[str] = "opening sql connection"
    _connect_error: ClassVar[str] = "opening sql connection"
    _url_aliases: ClassVar[tuple[tuple[str, str], ...]] = ()

    def __init__(self, connection: Any) -> None:
        self._connection = connection
        self._engine: sqlalchemy.engine.Engine | None = None
        self._owned = False

    @classmethod
    def _normalise_url(cls, conn_str: str) -> str:
        for prefix, replacement in cls._url_aliases:
            if conn_str.startswith(prefix):
                return replacement + conn_str[len(prefix):]
        return conn_str

    @classmethod
    def from_dsn(cls: type[_S], conn_str: str) -> _S:
        """Open a connection from a database URL; the source then owns it."""
        try:
            engine = sqlalchemy.create_engine(cls._normalise_url(conn_str))
        except (sqlalchemy.exc.SQLAlchemyError, ImportError) as exc:
            raise RuntimeError(f"{cls._parse_error}: {exc}") from exc
        try:
            connection = engine.raw_connection()
        except sqlalchemy.exc.SQLAlchemyError as exc:
            engine.dispose()
            raise RuntimeError(f"{cls._connect_error}: {exc}") from exc
        source = cls(connection)
        source._engine = engine
        source._owned = True
        return source

    def close(self) -> None:
        """Close the connection if this source opened it; otherwise do nothing."""
        if not self._owned:
            return
        self._owned = False
        try:
            self._connection.close()
        finally:
            if self._engine is not None:
                self._engine.dispose()

    def extract_schema(self) -> Schema:
        """Extract the tables, and the foreign keys where the database has them."""
        tables = self._rows_to_tables(self._fetch("tables", self._tables_query))
        references: list[Reference] = []
        if self._references_query is not None:
            references = self._rows_to_references(
                self._fetch("references", self._references_query)
            )
        return Schema(tables=tables, references=references)

    def _fetch(self, what: str, query: str) -> list[_Row]:
        try:
            cursor = self._connection.cursor()
            try:
                cursor.execute(query)
                return [tuple(row) for row in cursor.fetchall()]
            finally:
                cursor.close()
        except Exception as exc:
            raise RuntimeError(f"extracting {what}: querying {what}: {exc}") from exc

    def __enter__(self: _S) -> _S:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def rows_to_tables(rows: Iterable[_Row]) -> list[Table]:
    """Group column rows of system.columns into tables."""
    return _group_columns(
        (
            f"{database}.{table_name}",
            _build_column(
                column_name,
                data_type,
                default=default_expr,
                comment=comment,
                is_primary=is_primary,
            ),
        )
        for database, table_name, column_name, data_type, default_expr, comment, is_primary in rows
    )


class ClickHouseSource(_DbApiSource):
    """Extracts tables from a ClickHouse database through a DB-API connection."""

    _tables_query = _TABLES_QUERY
    _rows_to_tables = staticmethod(rows_to_tables)

    def __init__(self, connection: Any) -> None:
        """Wrap an existing connection; closing the source leaves it open."""
        super().__init__(connection)

    @classmethod
    def from_dsn(cls, conn_str: str) -> ClickHouseSource:
        """Open a ClickHouse connection from a database URL; the source then owns it."""
        return super().from_dsn(conn_str)

    def close(self) -> None:
        """Close the connection if this source opened it; otherwise do nothing."""
        super().close()

    def extract_schema(self) -> Schema:
        """Extract every table outside the system databases."""
        return super().extract_schema()

    def __enter__(self) -> ClickHouseSource:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
"""Schema extraction from MySQL databases."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from dberd.schema import Reference, Schema, Table
from dberd.sources.clickhouse import (
    _build_column,
    _DbApiSource,
    _group_columns,
    _references_from_rows,
)

_TABLES_QUERY = """
    SELECT
        TABLE_SCHEMA,
        TABLE_NAME,
        COLUMN_NAME,
        COLUMN_TYPE,
        IS_NULLABLE,
        COLUMN_DEFAULT,
        COLUMN_COMMENT,
        COLUMN_KEY = 'PRI' as is_primary
    FROM information_schema.COLUMNS
    WHERE TABLE_SCHEMA NOT IN ('information_schema', 'performance_schema', 'mysql', 'sys')
    ORDER BY TABLE_SCHEMA, TABLE_NAME, ORDINAL_POSITION;"""

_REFERENCES_QUERY = """
    SELECT
        TABLE_SCHEMA,
        TABLE_NAME,
        COLUMN_NAME,
        REFERENCED_TABLE_SCHEMA,
        REFERENCED_TABLE_NAME,
        REFERENCED_COLUMN_NAME
    FROM information_schema.KEY_COLUMN_USAGE
    WHERE REFERENCED_TABLE_SCHEMA IS NOT NULL
    AND TABLE_SCHEMA NOT IN ('information_schema', 'performance_schema', 'mysql', 'sys')
    ORDER BY TABLE_SCHEMA, TABLE_NAME, COLUMN_NAME;"""


def rows_to_tables(rows: Iterable[tuple[Any, ...]]) -> list[Table]:
    """Group rows of information_schema.COLUMNS into tables."""
    return _group_columns(
        (
            f"{schema_name}.{table_name}",
            _build_column(
                column_name,
                column_type,
                not_null=is_nullable == "NO",
                default=column_default,
                comment=column_comment,
                is_primary=is_primary,
            ),
        )
        for (
            schema_name,
            table_name,
            column_name,
            column_type,
            is_nullable,
            column_default,
            column_comment,
            is_primary,
        ) in rows
    )


def rows_to_references(rows: Iterable[tuple[Any, ...]]) -> list[Reference]:
    """Turn rows of information_schema.KEY_COLUMN_USAGE into references."""
    return _references_from_rows(rows)


class MySQLSource(_DbApiSource):
    """Extracts tables and foreign keys from a MySQL database through a DB-API connection."""

    _tables_query = _TABLES_QUERY
    _references_query = _REFERENCES_QUERY
    _rows_to_tables = staticmethod(rows_to_tables)
    _rows_to_references = staticmethod(rows_to_references)
    _parse_error = "opening mysql connection"
    _connect_error = "opening mysql connection"
    _url_aliases = (("mysql://", "mysql+pymysql://"),)

    def __init__(self, connection: Any) -> None:
        """Wrap an existing connection; closing the source leaves it open."""
        super().__init__(connection)

    @classmethod
    def from_dsn(cls, conn_str: str) -> MySQLSource:
        """Open a MySQL connection from a database URL; the source then owns it."""
        return super().from_dsn(conn_str)

    def close(self) -> None:
        """Close the connection if this source opened it; otherwise do nothing."""
        super().close()

    def extract_schema(self) -> Schema:
        """Extract the user tables and their foreign keys."""
        return super().extract_schema()

    def __enter__(self) -> MySQLSource:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
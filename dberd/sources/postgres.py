"""Schema extraction from PostgreSQL databases."""

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

# One row per column of every base table outside the system schemas,
# in table order and then ordinal position.
_TABLES_QUERY = """
SELECT col.table_schema, col.table_name, col.column_name, col.data_type,
       col.is_nullable, col.column_default, descr.description,
       EXISTS (
           SELECT 1
           FROM information_schema.table_constraints AS cons
           JOIN information_schema.key_column_usage AS usage
             ON usage.constraint_name = cons.constraint_name
            AND usage.table_schema = cons.table_schema
           WHERE cons.constraint_type = 'PRIMARY KEY'
             AND usage.table_schema = col.table_schema
             AND usage.table_name = col.table_name
             AND usage.column_name = col.column_name
       )
FROM information_schema.columns AS col
JOIN information_schema.tables AS tab
  ON tab.table_schema = col.table_schema AND tab.table_name = col.table_name
LEFT JOIN pg_catalog.pg_statio_all_tables AS stat
  ON stat.schemaname = col.table_schema AND stat.relname = col.table_name
LEFT JOIN pg_catalog.pg_description AS descr
  ON descr.objoid = stat.relid AND descr.objsubid = col.ordinal_position
WHERE tab.table_type = 'BASE TABLE'
  AND col.table_schema NOT IN ('pg_catalog', 'information_schema')
ORDER BY col.table_schema, col.table_name, col.ordinal_position
"""

# One row per foreign key source column; where a column is part of several
# foreign keys, the alphabetically first target wins.
_REFERENCES_QUERY = """
SELECT DISTINCT ON (src_ns.nspname, src_rel.relname, src_att.attname)
       src_ns.nspname, src_rel.relname, src_att.attname,
       dst_ns.nspname, dst_rel.relname, dst_att.attname
FROM pg_constraint AS fk
JOIN pg_class AS src_rel ON src_rel.oid = fk.conrelid
JOIN pg_namespace AS src_ns ON src_ns.oid = src_rel.relnamespace
JOIN pg_class AS dst_rel ON dst_rel.oid = fk.confrelid
JOIN pg_namespace AS dst_ns ON dst_ns.oid = dst_rel.relnamespace
JOIN LATERAL unnest(fk.conkey) WITH ORDINALITY AS src_key(attnum, pos) ON TRUE
JOIN LATERAL unnest(fk.confkey) WITH ORDINALITY AS dst_key(attnum, pos)
  ON dst_key.pos = src_key.pos
JOIN pg_attribute AS src_att
  ON src_att.attrelid = src_rel.oid AND src_att.attnum = src_key.attnum
JOIN pg_attribute AS dst_att
  ON dst_att.attrelid = dst_rel.oid AND dst_att.attnum = dst_key.attnum
WHERE fk.contype = 'f'
ORDER BY src_ns.nspname, src_rel.relname, src_att.attname,
         dst_ns.nspname, dst_rel.relname, dst_att.attname
"""


def rows_to_tables(rows: Iterable[tuple[Any, ...]]) -> list[Table]:
    """Group rows of information_schema.columns into tables."""
    return _group_columns(
        (
            f"{schema_name}.{table_name}",
            _build_column(
                column_name,
                data_type.upper(),
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
            data_type,
            is_nullable,
            column_default,
            column_comment,
            is_primary,
        ) in rows
    )


def rows_to_references(rows: Iterable[tuple[Any, ...]]) -> list[Reference]:
    """Turn foreign key rows into references between schema-qualified tables."""
    return _references_from_rows(rows)


class PostgresSource(_DbApiSource):
    """Extracts tables and foreign keys from a PostgreSQL database through a DB-API connection."""

    _tables_query = _TABLES_QUERY
    _references_query = _REFERENCES_QUERY
    _rows_to_tables = staticmethod(rows_to_tables)
    _rows_to_references = staticmethod(rows_to_references)
    _parse_error = "parsing postgres connection string"
    _connect_error = "opening postgres connection"
    _url_aliases = (("postgres://", "postgresql://"),)

    def __init__(self, connection: Any) -> None:
        """Wrap an existing connection; closing the source leaves it open."""
        super().__init__(connection)

    @classmethod
    def from_dsn(cls, conn_str: str) -> PostgresSource:
        """Open a PostgreSQL connection from a database URL; the source then owns it."""
        return super().from_dsn(conn_str)

    def close(self) -> None:
        """Close the connection if this source opened it; otherwise do nothing."""
        super().close()

    def extract_schema(self) -> Schema:
        """Extract the base tables and their foreign keys."""
        return super().extract_schema()

    def __enter__(self) -> PostgresSource:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
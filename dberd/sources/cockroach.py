"""Schema extraction from CockroachDB databases."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import sqlalchemy
import sqlalchemy.exc

from dberd.schema import Column, Reference, Schema, Source, Table, TableColumn

# One row per visible column of every base table in a user-defined schema,
# in table order and then ordinal position.
_TABLES_QUERY = """
SELECT col.table_schema, col.table_name, col.column_name, col.crdb_sql_type,
       col.is_nullable, col.column_default, col.column_comment,
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
WHERE tab.table_type = 'BASE TABLE'
  AND col.is_hidden = 'NO'
  AND col.table_schema IN (
      SELECT schema_name FROM information_schema.schemata
      WHERE crdb_is_user_defined = 'YES'
  )
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
    tables: dict[str, Table] = {}
    for (
        schema_name,
        table_name,
        column_name,
        data_type,
        is_nullable,
        column_default,
        column_comment,
        is_primary,
    ) in rows:
        key = f"{schema_name}.{table_name}"
        table = tables.get(key)
        if table is None:
            table = tables[key] = Table(key)

        definition = data_type
        if is_nullable == "NO":
            definition += " NOT NULL"
        if column_default:
            definition += f" DEFAULT {column_default}"

        table.columns.append(
            Column(
                name=column_name,
                definition=definition,
                comment=column_comment or "",
                is_primary=bool(is_primary),
            )
        )
    return list(tables.values())


def rows_to_references(rows: Iterable[tuple[Any, ...]]) -> list[Reference]:
    """Turn foreign key rows into references between schema-qualified tables."""
    return [
        Reference(
            source=TableColumn(f"{src_schema}.{src_table}", src_column),
            target=TableColumn(f"{tgt_schema}.{tgt_table}", tgt_column),
        )
        for src_schema, src_table, src_column, tgt_schema, tgt_table, tgt_column in rows
    ]


def _normalise_url(conn_str: str) -> str:
    for prefix in ("postgres://", "cockroach://"):
        if conn_str.startswith(prefix):
            return "postgresql://" + conn_str[len(prefix):]
    return conn_str


class CockroachSource(Source):
    """Extracts tables and foreign keys from a CockroachDB database through a DB-API connection."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection
        self._engine: sqlalchemy.engine.Engine | None = None
        self._owned = False

    @classmethod
    def from_dsn(cls, conn_str: str) -> CockroachSource:
        """Open a connection from a database URL; the source then owns it."""
        try:
            engine = sqlalchemy.create_engine(_normalise_url(conn_str))
        except (sqlalchemy.exc.SQLAlchemyError, ImportError) as exc:
            raise RuntimeError(f"parsing cockroach connection string: {exc}") from exc
        try:
            connection = engine.raw_connection()
        except sqlalchemy.exc.SQLAlchemyError as exc:
            engine.dispose()
            raise RuntimeError(f"opening cockroach connection: {exc}") from exc
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
        """Extract all user-defined base tables, visible columns and foreign keys."""
        try:
            table_rows = self._query(_TABLES_QUERY)
        except Exception as exc:
            raise RuntimeError(f"extracting tables: querying tables: {exc}") from exc
        try:
            reference_rows = self._query(_REFERENCES_QUERY)
        except Exception as exc:
            raise RuntimeError(f"extracting references: querying references: {exc}") from exc
        return Schema(
            tables=rows_to_tables(table_rows),
            references=rows_to_references(reference_rows),
        )

    def _query(self, query: str) -> list[tuple[Any, ...]]:
        cursor = self._connection.cursor()
        try:
            cursor.execute(query)
            return [tuple(row) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def __enter__(self) -> CockroachSource:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
from unittest.mock import MagicMock

import pytest

from dberd.schema import Column, Reference, Schema, Table, TableColumn
from dberd.sources.postgres import PostgresSource, rows_to_references, rows_to_tables

TABLE_ROWS = [
    ("public", "users", "id", "integer", "NO", "nextval('users_id_seq'::regclass)", None, True),
    ("public", "users", "name", "character varying", "NO", None, None, False),
    ("public", "users", "email", "character varying", "NO", None, "User email address", False),
    ("public", "users", "created_at", "timestamp with time zone", "YES", "CURRENT_TIMESTAMP", None, False),
    ("public", "roles", "id", "integer", "NO", "nextval('roles_id_seq'::regclass)", None, True),
    ("public", "roles", "description", "text", "YES", None, "Role description and permissions", False),
    ("public", "post_categories", "post_id", "integer", "NO", None, None, True),
    ("public", "post_categories", "category_id", "integer", "NO", None, None, True),
]

REFERENCE_ROWS = [
    ("public", "post_categories", "category_id", "public", "categories", "id"),
    ("public", "post_categories", "post_id", "public", "posts", "id"),
    ("public", "categories", "parent_id", "public", "categories", "id"),
]


@pytest.fixture
def connection():
    conn = MagicMock()
    conn.cursor.return_value.fetchall.side_effect = [TABLE_ROWS, REFERENCE_ROWS]
    return conn


def test_extract_schema_matches_expected(connection):
    actual = PostgresSource(connection).extract_schema()
    actual.sort()
    expected = Schema(
        tables=[
            Table("public.users", [
                Column("id", "INTEGER NOT NULL DEFAULT nextval('users_id_seq'::regclass)", is_primary=True),
                Column("name", "CHARACTER VARYING NOT NULL"),
                Column("email", "CHARACTER VARYING NOT NULL", comment="User email address"),
                Column("created_at", "TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP"),
            ]),
            Table("public.roles", [
                Column("id", "INTEGER NOT NULL DEFAULT nextval('roles_id_seq'::regclass)", is_primary=True),
                Column("description", "TEXT", comment="Role description and permissions"),
            ]),
            Table("public.post_categories", [
                Column("post_id", "INTEGER NOT NULL", is_primary=True),
                Column("category_id", "INTEGER NOT NULL", is_primary=True),
            ]),
        ],
        references=[
            Reference(TableColumn("public.categories", "parent_id"), TableColumn("public.categories", "id")),
            Reference(TableColumn("public.post_categories", "category_id"), TableColumn("public.categories", "id")),
            Reference(TableColumn("public.post_categories", "post_id"), TableColumn("public.posts", "id")),
        ],
    )
    expected.sort()
    assert actual == expected


def test_rows_to_tables_uppercases_type_only():
    tables = rows_to_tables([("s", "t", "c", "text", "YES", "'abc'::text", None, False)])
    assert tables[0].columns == [Column("c", "TEXT DEFAULT 'abc'::text")]


def test_rows_to_tables_groups_in_first_seen_order():
    tables = rows_to_tables(TABLE_ROWS)
    assert [t.name for t in tables] == ["public.users", "public.roles", "public.post_categories"]
    assert [c.name for c in tables[0].columns] == ["id", "name", "email", "created_at"]


def test_rows_to_references():
    refs = rows_to_references([("x", "y", "z", "p", "q", "r")])
    assert refs == [Reference(TableColumn("x.y", "z"), TableColumn("p.q", "r"))]


def test_borrowed_connection_not_closed(connection):
    with PostgresSource(connection) as source:
        source.extract_schema()
    connection.close.assert_not_called()


@pytest.mark.parametrize(
    ("executed", "message"),
    [
        ([ValueError("boom")], "extracting tables: querying tables: boom"),
        ([None, ValueError("bad")], "extracting references: querying references: bad"),
    ],
)
def test_query_failure_is_wrapped(connection, executed, message):
    cursor = connection.cursor.return_value
    cursor.execute.side_effect = executed
    with pytest.raises(RuntimeError, match=message):
        PostgresSource(connection).extract_schema()


def test_from_dsn_rejects_invalid_url():
    with pytest.raises(RuntimeError, match="parsing postgres connection string"):
        PostgresSource.from_dsn("not a url")
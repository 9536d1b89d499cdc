import pytest

from dberd.schema import (
    Column,
    Reference,
    Schema,
    Table,
    TableColumn,
    TargetCapabilities,
    UnsupportedFormatError,
)


def ref(src_table, src_col, tgt_table, tgt_col):
    return Reference(TableColumn(src_table, src_col), TableColumn(tgt_table, tgt_col))


CASES = [
    pytest.param(
        Schema(
            tables=[
                Table("z_table", [Column("z_column", "text"), Column("a_column", "text")]),
                Table("a_table", [Column("z_column", "text"), Column("a_column", "text")]),
            ],
            references=[
                ref("z_table", "z_column", "a_table", "a_column"),
                ref("a_table", "a_column", "z_table", "z_column"),
            ],
        ),
        Schema(
            tables=[
                Table("a_table", [Column("a_column", "text"), Column("z_column", "text")]),
                Table("z_table", [Column("a_column", "text"), Column("z_column", "text")]),
            ],
            references=[
                ref("a_table", "a_column", "z_table", "z_column"),
                ref("z_table", "z_column", "a_table", "a_column"),
            ],
        ),
        id="sorts tables and references",
    ),
    pytest.param(
        Schema(
            tables=[
                Table("table_a", [Column("id", "int", is_primary=True), Column("name", "text")]),
                Table("table_c", [Column("id", "int", is_primary=True), Column("b_id", "int")]),
                Table(
                    "table_b",
                    [
                        Column("id", "int", is_primary=True),
                        Column("a_id", "int"),
                        Column("name", "text"),
                    ],
                ),
            ],
            references=[
                ref("table_a", "name", "table_b", "name"),
                ref("table_c", "b_id", "table_b", "id"),
                ref("table_b", "a_id", "table_a", "id"),
                ref("table_c", "id", "table_a", "id"),
                ref("table_a", "id", "table_b", "a_id"),
                ref("table_a", "id", "table_c", "id"),
                ref("table_b", "id", "table_c", "b_id"),
                ref("table_c", "b_id", "table_a", "id"),
            ],
        ),
        Schema(
            tables=[
                Table("table_a", [Column("id", "int", is_primary=True), Column("name", "text")]),
                Table(
                    "table_b",
                    [
                        Column("id", "int", is_primary=True),
                        Column("a_id", "int"),
                        Column("name", "text"),
                    ],
                ),
                Table("table_c", [Column("id", "int", is_primary=True), Column("b_id", "int")]),
            ],
            references=[
                ref("table_a", "id", "table_b", "a_id"),
                ref("table_a", "id", "table_c", "id"),
                ref("table_a", "name", "table_b", "name"),
                ref("table_b", "a_id", "table_a", "id"),
                ref("table_b", "id", "table_c", "b_id"),
                ref("table_c", "b_id", "table_a", "id"),
                ref("table_c", "b_id", "table_b", "id"),
                ref("table_c", "id", "table_a", "id"),
            ],
        ),
        id="sorts complex references",
    ),
    pytest.param(
        Schema(
            tables=[
                Table(
                    "test_table",
                    [
                        Column("z_column", "text"),
                        Column("a_column", "varchar(255)"),
                        Column("id", "int", is_primary=True),
                        Column("created_at", "timestamp"),
                        Column("b_column", "text"),
                        Column("updated_at", "timestamp"),
                        Column("status", "varchar(50)"),
                        Column("deleted_at", "timestamp"),
                        Column("name", "varchar(255)"),
                        Column("description", "text"),
                        Column("version", "int"),
                    ],
                )
            ]
        ),
        Schema(
            tables=[
                Table(
                    "test_table",
                    [
                        Column("id", "int", is_primary=True),
                        Column("version", "int"),
                        Column("b_column", "text"),
                        Column("description", "text"),
                        Column("z_column", "text"),
                        Column("created_at", "timestamp"),
                        Column("deleted_at", "timestamp"),
                        Column("updated_at", "timestamp"),
                        Column("a_column", "varchar(255)"),
                        Column("name", "varchar(255)"),
                        Column("status", "varchar(50)"),
                    ],
                )
            ]
        ),
        id="sorts columns considering definition",
    ),
    pytest.param(Schema([], []), Schema([], []), id="empty schema"),
]


@pytest.mark.parametrize("given, expected", CASES)
def test_sort(given, expected):
    schema = Schema(
        tables=[Table(t.name, list(t.columns)) for t in given.tables],
        references=list(given.references),
    )
    schema.sort()
    assert schema == expected


def test_sort_is_idempotent():
    schema = CASES[1].values[0]
    schema.sort()
    once = schema.to_dict()
    schema.sort()
    assert schema.to_dict() == once


def test_to_dict_omits_empty_comment():
    schema = Schema(
        tables=[
            Table(
                "public.users",
                [
                    Column("id", "INT", is_primary=True),
                    Column("email", "TEXT", comment="User email address"),
                ],
            )
        ],
        references=[ref("public.posts", "user_id", "public.users", "id")],
    )
    assert schema.to_dict() == {
        "tables": [
            {
                "name": "public.users",
                "columns": [
                    {"name": "id", "definition": "INT", "is_primary": True},
                    {
                        "name": "email",
                        "comment": "User email address",
                        "definition": "TEXT",
                        "is_primary": False,
                    },
                ],
            }
        ],
        "references": [
            {
                "source": {"table": "public.posts", "column": "user_id"},
                "target": {"table": "public.users", "column": "id"},
            }
        ],
    }


def test_unsupported_format_error_message():
    err = UnsupportedFormatError("json", "d2")
    assert str(err) == "json format is not supported, d2 expected"
    assert (err.given, err.expected) == ("json", "d2")


def test_target_capabilities_defaults():
    caps = TargetCapabilities(format=True)
    assert (caps.format, caps.render) == (True, False)
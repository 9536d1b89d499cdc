# dberd

`dberd` reads the structure of a live database and turns it into one
uniform model: tables, their columns and the foreign-key references
between them. That model is the starting point for entity-relationship
diagrams, schema documentation or schema comparisons.

Supported databases:

| Database    | Source class       | Module                     | References |
|-------------|--------------------|----------------------------|------------|
| PostgreSQL  | `PostgresSource`   | `dberd.sources.postgres`   | yes        |
| CockroachDB | `CockroachSource`  | `dberd.sources.cockroach`  | yes        |
| MySQL       | `MySQLSource`      | `dberd.sources.mysql`      | yes        |
| ClickHouse  | `ClickHouseSource` | `dberd.sources.clickhouse` | no         |
| MongoDB     | `MongoDBSource`    | `dberd.sources.mongodb`    | no         |

## The schema model

Everything lives in `dberd.schema`:

- `Schema`: `tables` and `references`.
- `Table`: a `name` (qualified as `schema.table`, or `database.collection`
  for MongoDB) and its `columns`.
- `Column`: `name`, `definition` (the type, plus `NOT NULL` and
  `DEFAULT ...` where they apply), `comment` and `is_primary`.
- `Reference`: a foreign key from a `source` `TableColumn` to a `target`
  `TableColumn`.

`Schema.sort()` puts a schema into a stable order, in place: tables by
name; within each table, primary-key columns first, then by definition,
then by name; references by source table, source column, target table and
target column. `Schema.to_dict()` gives a plain dictionary that can be
dumped as JSON; a column's `comment` key is left out when it is empty.

## Extracting a schema

Each source can be built from a connection string with `from_dsn`, in which
case it owns the connection and closes it on `close()`, or around a
connection or client you already have, which `close()` leaves open.
Sources are context managers that call `close()` on exit. Failures while
connecting or querying are raised as `RuntimeError`.

```python
from dberd.sources.mongodb import MongoDBSource

with MongoDBSource.from_dsn("mongodb://localhost:27017") as source:
    schema = source.extract_schema()

schema.sort()
for table in schema.tables:
    print(table.name)
    for column in table.columns:
        marker = "*" if column.is_primary else " "
        print(f"  {marker} {column.name}: {column.definition}")
```

Reusing an existing client:

```python
import json

import pymongo

from dberd.sources.mongodb import MongoDBSource

client = pymongo.MongoClient("mongodb://localhost:27017")

source = MongoDBSource(client)
schema = source.extract_schema()
schema.sort()
print(json.dumps(schema.to_dict(), indent=2))

client.close()
```

The SQL sources (`PostgresSource`, `CockroachSource`, `MySQLSource`,
`ClickHouseSource`) take any DB-API connection. Their `from_dsn` opens the
connection through SQLAlchemy, so the URL must name a dialect whose driver
is installed; the database driver itself is not a dependency of this
package. A few URL prefixes are rewritten first:

- `MySQLSource`: `mysql://` becomes `mysql+pymysql://`.
- `PostgresSource`: `postgres://` becomes `postgresql://`.
- `CockroachSource`: `postgres://` and `cockroach://` become `postgresql://`.

For references, each foreign-key source column is reported once on
PostgreSQL and CockroachDB; if it belongs to several foreign keys, the
alphabetically first target is kept. Row-to-model helpers are available
for each SQL source as `rows_to_tables(rows)` and, where references are
supported, `rows_to_references(rows)`.

System schemas are skipped: `pg_catalog` and `information_schema` on
PostgreSQL, non-user schemas and hidden columns on CockroachDB,
`information_schema`, `performance_schema`, `mysql` and `sys` on MySQL,
the `system` and information-schema databases on ClickHouse, and `admin`,
`local`, `system*` databases and `system.*` collections on MongoDB.

MongoDB collections have no fixed schema, so the columns of a collection
are inferred from one sampled document (`document_columns`); `_id` is
reported as the primary key with definition `ObjectId`, other fields get
`String`, `Int`, `Double`, `Boolean`, `Array`, `Object` or `Null` from
`mongodb_type`, or the Python type name otherwise. An empty collection
yields a table with no columns.

## Targets

`dberd.schema` also defines the pieces a diagram target builds on:
`FormattedSchema`, `TargetCapabilities`, the abstract `Target` interface
and `UnsupportedFormatError`, meant to be raised when a target is handed a
formatted schema of a type it does not understand.

## What this package does not do

It has no concrete targets: nothing here formats a schema into a diagram
language or renders a diagram image. It also has no command-line program;
it is used as a library.

## Running the tests

Install the `test` extra and run `pytest`.
"""Schema sources for PostgreSQL, CockroachDB, MySQL, ClickHouse and MongoDB."""
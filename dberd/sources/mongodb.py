"""Schema extraction from MongoDB databases by sampling documents."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pymongo
import pymongo.errors

from dberd.schema import Column, Schema, Source, Table

_SKIPPED_DATABASES = frozenset({"admin", "local"})


def mongodb_type(value: Any) -> str:
    """Name the MongoDB type of a decoded document value."""
    if value is None:
        return "Null"
    if isinstance(value, str):
        return "String"
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, int):
        return "Int"
    if isinstance(value, float):
        return "Double"
    if isinstance(value, (list, tuple)):
        return "Array"
    if isinstance(value, Mapping):
        return "Object"
    return type(value).__name__


def document_columns(document: Mapping[str, Any]) -> list[Column]:
    """Infer columns from a sample document."""
    return [
        Column(name=name, definition="ObjectId", is_primary=True)
        if name == "_id"
        else Column(name=name, definition=mongodb_type(value))
        for name, value in document.items()
    ]


class MongoDBSource(Source):
    """Extracts collections from a MongoDB server as tables."""

    def __init__(self, client: Any) -> None:
        self._client = client
        self._owned = False

    @classmethod
    def from_dsn(cls, conn_str: str) -> MongoDBSource:
        """Create a client from a connection string; the source then owns it."""
        try:
            client = pymongo.MongoClient(conn_str)
        except pymongo.errors.PyMongoError as exc:
            raise RuntimeError(f"connecting to mongodb: {exc}") from exc
        source = cls(client)
        source._owned = True
        return source

    def close(self) -> None:
        """Close the client if this source created it; otherwise do nothing."""
        if self._owned:
            self._owned = False
            self._client.close()

    def extract_schema(self) -> Schema:
        """Extract every user collection, inferring columns from one document each."""
        try:
            tables = self._extract_collections()
        except pymongo.errors.PyMongoError as exc:
            raise RuntimeError(f"extracting collections: {exc}") from exc
        return Schema(tables=tables)

    def _extract_collections(self) -> list[Table]:
        tables = []
        for db_name in self._client.list_database_names():
            if db_name.startswith("system") or db_name in _SKIPPED_DATABASES:
                continue
            database = self._client.get_database(db_name)
            for coll_name in database.list_collection_names():
                if coll_name.startswith("system."):
                    continue
                document = database.get_collection(coll_name).find_one({})
                columns = document_columns(document) if document is not None else []
                tables.append(Table(f"{db_name}.{coll_name}", columns))
        return tables

    def __enter__(self) -> MongoDBSource:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
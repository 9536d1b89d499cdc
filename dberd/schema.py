"""Core data model for extracted database schemas."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Column:
    """A table column."""

    name: str
    definition: str
    comment: str = ""
    is_primary: bool = False

    def _to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.comment:
            data["comment"] = self.comment
        data["definition"] = self.definition
        data["is_primary"] = self.is_primary
        return data


@dataclass
class Table:
    """A database table with its columns."""

    name: str
    columns: list[Column] = field(default_factory=list)


@dataclass
class TableColumn:
    """A reference to a specific column in a table."""

    table: str
    column: str


@dataclass
class Reference:
    """A foreign key relationship between two table columns."""

    source: TableColumn
    target: TableColumn


def _column_key(column: Column) -> tuple[bool, str, str]:
    return (not column.is_primary, column.definition, column.name)


def _reference_key(ref: Reference) -> tuple[str, str, str, str]:
    return (ref.source.table, ref.source.column, ref.target.table, ref.target.column)


@dataclass
class Schema:
    """A complete database schema with tables and their references."""

    tables: list[Table] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)

    def sort(self) -> None:
        """Sort tables, their columns and references into a stable order, in place."""
        self.tables.sort(key=lambda table: table.name)
        for table in self.tables:
            table.columns.sort(key=_column_key)
        self.references.sort(key=_reference_key)

    def to_dict(self) -> dict[str, Any]:
        """Return the schema as plain JSON-compatible data."""
        return {
            "tables": [
                {"name": table.name, "columns": [c._to_dict() for c in table.columns]}
                for table in self.tables
            ],
            "references": [
                {
                    "source": {"table": ref.source.table, "column": ref.source.column},
                    "target": {"table": ref.target.table, "column": ref.target.column},
                }
                for ref in self.references
            ],
        }


@dataclass
class FormattedSchema:
    """A schema written out in a target description language."""

    type: str
    data: bytes


@dataclass(frozen=True)
class TargetCapabilities:
    """What a target is able to do."""

    format: bool = False
    render: bool = False


class Source(ABC):
    """Something a schema can be extracted from."""

    @abstractmethod
    def extract_schema(self) -> Schema:
        """Extract the database schema."""

    @abstractmethod
    def close(self) -> None:
        """Release any resources held by the source."""


class Target(ABC):
    """Something that formats and renders schemas."""

    @abstractmethod
    def format_schema(self, schema: Schema) -> FormattedSchema:
        """Format a schema."""

    @abstractmethod
    def render_schema(self, formatted: FormattedSchema) -> bytes:
        """Render a formatted schema into a diagram."""

    @abstractmethod
    def capabilities(self) -> TargetCapabilities:
        """Report what this target supports."""


class UnsupportedFormatError(Exception):
    """Raised when a formatted schema has a type the target cannot handle."""

    def __init__(self, given: str, expected: str) -> None:
        self.given = given
        self.expected = expected
        super().__init__(f"{given} format is not supported, {expected} expected")
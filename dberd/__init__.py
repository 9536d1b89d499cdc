"""Database schema extraction into a uniform model of tables, columns and references."""

__version__ = "0.1.0"
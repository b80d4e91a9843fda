"""A Language Server Protocol server for SQL documents, with SQLite query execution."""

__version__ = "0.1.0"
__all__ = ["__version__"]
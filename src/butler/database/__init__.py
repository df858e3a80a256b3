"""
Database package for Butler.

- **db_connection.py**: Single long-lived aiosqlite connection with WAL pragmas,
  serialised write transactions and a module-level ``db_connection`` singleton.
- **db_schema.py**: Table, index and schema version creation.
"""

from butler.database.db_connection import DB_PATH, ConnectionManager, db_connection
from butler.database.db_schema import SchemaManager


async def initialize_database(path=DB_PATH) -> None:
    """Open the shared connection and make sure the schema exists."""
    await db_connection.open(path)
    await SchemaManager.initialize_schema(db_connection.connection)


__all__ = ["DB_PATH", "ConnectionManager", "SchemaManager", "db_connection", "initialize_database"]

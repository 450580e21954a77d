"""Infrastructure resources: database engine and session factory.

This module is part of the infra layer and must not import from application features.
"""
from typing import Any, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker


class DatabaseResource:
    """Database resource for dependency injection."""

    def __init__(self, database_url: str, ssl: bool = False):
        self.database_url = database_url
        self.ssl = ssl
        self.engine = None
        self.session_factory = None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _connect_args(self) -> Dict[str, Any]:
        if self.ssl and not self.is_sqlite:
            return {"ssl": "require"}
        return {}

    async def init(self):
        """Initialize database connection."""
        if self.is_sqlite:
            self.engine = create_async_engine(self.database_url, echo=False)
            # SQLite ships with FK enforcement off; message rows rely on it
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self.engine = create_async_engine(
                self.database_url,
                echo=False,
                pool_pre_ping=True,
                pool_recycle=3600,
                connect_args=self._connect_args(),
            )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        return self

    def get_session(self) -> AsyncSession:
        """Get database session (synchronous accessor)."""
        if self.session_factory is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self.session_factory()

    async def shutdown(self):
        """Shutdown database connection."""
        if self.engine:
            await self.engine.dispose()


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

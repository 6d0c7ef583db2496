"""
Async SQLAlchemy database manager.
Handles engine lifecycle, schema creation and session creation.
"""

from pathlib import Path
from typing import Dict, Optional

import structlog
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .models import Base

logger = structlog.get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    """
    Async database manager for user and book storage.
    Handles connection, schema creation and session handling.
    """

    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize database manager.

        Args:
            database_url: SQLAlchemy async database URL
            echo: Log every SQL statement
        """
        self.database_url = database_url
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    async def connect(self) -> None:
        """Create the engine, the schema, and check connectivity."""
        try:
            if self.database_url.startswith("sqlite"):
                db_path = self.database_url.split("///")[-1]
                if db_path and db_path != ":memory:":
                    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

            self.engine = create_async_engine(self.database_url, echo=self.echo)
            if self.engine.dialect.name == "sqlite":
                event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

            self._session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
                await conn.execute(text("SELECT 1"))

            logger.info("Successfully connected to database", dialect=self.engine.dialect.name)

        except Exception as e:
            logger.error("Failed to connect to database", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Dispose of the engine and its connection pool."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None
            logger.info("Disconnected from database")

    def session(self) -> AsyncSession:
        """Open a new session; use as an async context manager."""
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager.connect() must be called first")
        return self._session_factory()

    async def health_check(self) -> Dict[str, str]:
        """Check database connectivity."""
        if self.engine is None:
            return {"status": "unhealthy"}
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "healthy"}
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy"}

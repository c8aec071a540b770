"""
PostgreSQL database connection with SQLAlchemy ORM
"""

from typing import Optional, AsyncGenerator
from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine

from src.infra.config.settings import Settings
from src.infra.models import Base
from src.core.logger.logger import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """
    SQLAlchemy async database manager.

    Constructed once by the application factory and shared by reference
    through ``app.state.db_manager``.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    def _build_database_url(self) -> str:
        """Build PostgreSQL connection URL"""
        s = self.settings
        return (
            f"postgresql+asyncpg://{s.POSTGRES_USER}:{s.POSTGRES_PASSWORD}"
            f"@{s.POSTGRES_HOST}:{s.POSTGRES_PORT}/{s.POSTGRES_DB}"
        )

    async def connect(self) -> AsyncEngine:
        """Initialize database engine and session factory"""
        if self._engine is not None:
            return self._engine

        s = self.settings
        try:
            self._engine = create_async_engine(
                self._build_database_url(),
                echo=s.DB_LOGGING_ENABLED,
                pool_pre_ping=True,
                pool_size=s.POSTGRES_MIN_POOL_SIZE,
                max_overflow=s.POSTGRES_MAX_POOL_SIZE - s.POSTGRES_MIN_POOL_SIZE,
                pool_recycle=3600
            )

            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False
            )

            async with self._engine.begin() as conn:
                result = await conn.execute(text("SELECT version()"))
                version_row = result.fetchone()
                version = version_row[0] if version_row else "unknown"

                if s.DB_CREATE_TABLES:
                    await conn.run_sync(Base.metadata.create_all)

            logger.info(
                "Connected to PostgreSQL with SQLAlchemy successfully",
                extra={
                    "host": s.POSTGRES_HOST,
                    "port": s.POSTGRES_PORT,
                    "database": s.POSTGRES_DB,
                    "pool_size": f"{s.POSTGRES_MIN_POOL_SIZE}-{s.POSTGRES_MAX_POOL_SIZE}",
                    "version": version[:50],
                    "tables_created": s.DB_CREATE_TABLES
                }
            )

            return self._engine

        except Exception as e:
            logger.error(
                "Failed to connect to PostgreSQL",
                extra={
                    "host": s.POSTGRES_HOST,
                    "port": s.POSTGRES_PORT,
                    "database": s.POSTGRES_DB,
                    "error": str(e)
                }
            )
            if self._engine is not None:
                await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            raise

    async def close(self):
        """Close database engine"""
        if self._engine is not None:
            try:
                await self._engine.dispose()
                logger.info("PostgreSQL engine closed")
            except Exception as e:
                logger.error(f"Error closing PostgreSQL engine: {e}")
            finally:
                self._engine = None
                self._session_factory = None

    async def ping(self) -> bool:
        """Check that the database answers a trivial query"""
        if self._engine is None:
            return False
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    def get_engine(self) -> Optional[AsyncEngine]:
        """Get the current engine"""
        return self._engine

    def get_session_factory(self) -> Optional[async_sessionmaker]:
        """Get the session factory"""
        return self._session_factory


def get_database_manager(request: Request) -> DatabaseManager:
    """Dependency returning the manager owned by the running application"""
    return request.app.state.db_manager


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database session
    Use with FastAPI Depends()
    """
    db_manager = get_database_manager(request)

    if db_manager.get_session_factory() is None:
        await db_manager.connect()

    session_factory = db_manager.get_session_factory()
    if session_factory is None:
        raise RuntimeError("Database session factory not initialized")

    async with session_factory() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise

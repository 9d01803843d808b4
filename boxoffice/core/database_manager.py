"""
Database management with connection pooling and health monitoring
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import DisconnectionError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import AsyncAdaptedQueuePool, StaticPool

from boxoffice.core.settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class Base(DeclarativeBase):
    pass


class DatabaseManager:
    """Database manager owning the async engine and session factory"""

    def __init__(self, url: Optional[str] = None) -> None:
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._setup_engine(url)

    def _setup_engine(self, url: Optional[str]) -> None:
        """Setup database engine"""
        db_url = url or self._prepare_database_url()
        engine_kwargs = self._get_engine_kwargs(db_url)

        self.engine = create_async_engine(db_url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        self._setup_event_listeners()

        logger.info(f"Database engine initialized with URL: {self._mask_url(db_url)}")

    def _prepare_database_url(self) -> str:
        """Prepare database URL with appropriate async driver"""
        if settings.TESTING:
            return "sqlite+aiosqlite:///:memory:"
        return settings.database.database_url

    def _get_engine_kwargs(self, db_url: str) -> Dict[str, Any]:
        """Get engine configuration based on database type"""
        base_kwargs: Dict[str, Any] = {"echo": settings.database.ECHO}

        if "sqlite" in db_url:
            sqlite_connect_args: Dict[str, Any] = {
                "check_same_thread": False,
                "timeout": 20,
            }
            base_kwargs["connect_args"] = sqlite_connect_args
            if ":memory:" in db_url:
                # One shared connection keeps the in-memory database alive
                base_kwargs["poolclass"] = StaticPool
        else:
            postgres_connect_args: Dict[str, Any] = {
                "command_timeout": settings.database.COMMAND_TIMEOUT,
                "server_settings": {
                    "application_name": f"{settings.PROJECT_NAME}_app",
                    "statement_timeout": settings.database.STATEMENT_TIMEOUT,
                    "lock_timeout": settings.database.LOCK_TIMEOUT,
                },
            }
            base_kwargs.update(
                {
                    "poolclass": AsyncAdaptedQueuePool,
                    "pool_size": settings.database.POOL_SIZE,
                    "max_overflow": settings.database.MAX_OVERFLOW,
                    "pool_timeout": settings.database.POOL_TIMEOUT,
                    "pool_recycle": settings.database.POOL_RECYCLE,
                    "pool_pre_ping": settings.database.POOL_PRE_PING,
                    "connect_args": postgres_connect_args,
                }
            )

        return base_kwargs

    def _setup_event_listeners(self) -> None:
        """Setup database event listeners for monitoring"""
        if not self.engine:
            return

        @event.listens_for(self.engine.sync_engine, "checkout")  # type: ignore
        def receive_checkout(
            dbapi_connection: Any, connection_record: Any, connection_proxy: Any
        ) -> None:
            connection_record.info["checkout_time"] = time.time()

        @event.listens_for(self.engine.sync_engine, "checkin")  # type: ignore
        def receive_checkin(dbapi_connection: Any, connection_record: Any) -> None:
            checkout_time = connection_record.info.pop("checkout_time", None)
            if checkout_time is not None:
                checkout_duration = time.time() - checkout_time
                if checkout_duration > 30:  # Log slow connections
                    logger.warning(
                        f"Long-running database connection: {checkout_duration:.2f}s"
                    )

        @event.listens_for(self.engine.sync_engine, "invalidate")  # type: ignore
        def receive_invalidate(
            dbapi_connection: Any, connection_record: Any, exception: Any
        ) -> None:
            logger.warning(f"Database connection invalidated: {exception}")

    async def create_all(self) -> None:
        """Create every table known to the ORM metadata"""
        if not self.engine:
            raise RuntimeError("Database not initialized")

        # Make sure every model is registered on Base.metadata
        import boxoffice.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session with proper error handling"""
        if not self.session_factory:
            raise RuntimeError("Database not initialized")

        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            await session.close()

    async def health_check(self) -> dict[str, Any]:
        """Database health check"""
        if not self.engine:
            return {"status": "error", "message": "Database engine not initialized"}

        try:
            start_time = time.time()

            async with self.get_session() as session:
                result = await session.execute(text("SELECT 1 as health_check"))
                if result.scalar() != 1:
                    return {"status": "error", "message": "Health check query failed"}

            response_time = (time.time() - start_time) * 1000

            return {
                "status": "healthy",
                "response_time_ms": round(response_time, 2),
                "database_url": self._mask_url(
                    self.engine.url.render_as_string(hide_password=False)
                ),
            }

        except DisconnectionError as e:
            logger.error(f"Database disconnection error: {e}")
            return {"status": "error", "message": "Database disconnected"}
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return {"status": "error", "message": str(e)}

    async def close(self) -> None:
        """Close database engine and all connections"""
        if self.engine:
            await self.engine.dispose()
            logger.info("Database engine closed")

    def _mask_url(self, url: str) -> str:
        """Mask sensitive information in database URL"""
        if "@" in url:
            parts = url.split("@")
            if len(parts) == 2:
                auth_part = parts[0]
                if ":" in auth_part.split("//", 1)[-1]:
                    protocol_user = auth_part.rsplit(":", 1)[0]
                    return f"{protocol_user}:***@{parts[1]}"
        return url


# Global database manager instance
db_manager = DatabaseManager()

# feeflow/core/db.py - Engine, sessions and transactions for the fee-due store
from contextlib import contextmanager
from typing import Generator, Iterator, Optional
import logging
import threading
import time

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from feeflow.core.config import settings

logger = logging.getLogger(__name__)

SLOW_QUERY_SECONDS = 0.1


class DatabaseManager:
    """
    Owns one engine and its session factory.

    The API hands request sessions out through ``get_session``; the scheduler
    engines open a ``transaction`` per unit of work so that a status pass or a
    single reminder flag commits on its own.
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.DATABASE_URL
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def initialize(self) -> None:
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            try:
                self.engine = self._create_engine()
                # Records handed to the scheduler outlive their session
                self.SessionLocal = sessionmaker(
                    bind=self.engine, autoflush=False, expire_on_commit=False
                )
                self._install_listeners()
            except Exception as e:
                logger.error(f"Failed to initialize database: {e}")
                raise
            self._initialized = True
            logger.info(f"Database initialized ({'sqlite' if self.is_sqlite else 'postgresql'})")

    def _create_engine(self) -> Engine:
        if self.is_sqlite:
            # One shared connection; worker threads from asyncio.to_thread use it too
            return create_engine(
                self.database_url,
                echo=settings.DATABASE_ECHO,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False, "timeout": 30},
            )
        return create_engine(
            self.database_url,
            echo=settings.DATABASE_ECHO,
            poolclass=QueuePool,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_timeout=settings.DATABASE_POOL_TIMEOUT,
            pool_recycle=settings.DATABASE_POOL_RECYCLE,
            pool_pre_ping=True,
            connect_args={"connect_timeout": 10, "application_name": f"feeflow_{settings.ENV}"},
        )

    def _install_listeners(self) -> None:
        if self.is_sqlite:
            @event.listens_for(self.engine, "connect")
            def enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        if settings.is_development:
            @event.listens_for(self.engine, "before_cursor_execute")
            def start_timer(conn, cursor, statement, parameters, context, executemany):
                context._feeflow_started = time.perf_counter()

            @event.listens_for(self.engine, "after_cursor_execute")
            def log_slow_query(conn, cursor, statement, parameters, context, executemany):
                elapsed = time.perf_counter() - getattr(context, "_feeflow_started", time.perf_counter())
                if elapsed > SLOW_QUERY_SECONDS:
                    logger.warning(f"Slow query ({elapsed:.3f}s): {statement[:100]}...")

    def get_session(self) -> Generator[Session, None, None]:
        """Request-scoped session; the caller commits"""
        self.initialize()
        session = self.SessionLocal()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Session that commits on exit and rolls back if the block raises"""
        self.initialize()
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Transaction rolled back: {e}")
            raise
        finally:
            session.close()

    def health_check(self) -> dict:
        try:
            self.initialize()
            started = time.perf_counter()
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {
                "status": "healthy",
                "response_time_ms": round((time.perf_counter() - started) * 1000, 2),
            }
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {"status": "unhealthy", "error": str(e)}

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Database connections closed")


db_manager = DatabaseManager()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session from the process database"""
    yield from db_manager.get_session()

"""Database handle and transaction scope.

One `Database` is created at application startup and disposed at shutdown.
Routes receive sessions from it through `ims.api.deps.get_db`; nothing
connects at import time.
"""
import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from ims.db.base import Base
from ims.db.errors import translate_integrity_error

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and the session factory for one application."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        if url.startswith("sqlite"):
            connect_args = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # In-memory: every session must share the single connection
                self.engine = create_engine(url, connect_args=connect_args, poolclass=StaticPool, echo=echo)
            else:
                self.engine = create_engine(url, connect_args=connect_args, poolclass=NullPool, echo=echo)
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        else:
            # PostgreSQL/MySQL: QueuePool with sensible defaults
            self.engine = create_engine(
                url,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                pool_recycle=3600,
                pool_pre_ping=True,
                echo=echo,
            )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        # Register every model on the metadata before creating tables
        import ims.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def sessions(self) -> Generator[Session, None, None]:
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database engine disposed")


@contextmanager
def atomic(db: Session):
    """Run a block as one transaction: commit on success, roll back on any error.

    Integrity errors raised by the store are re-raised as typed conflict
    errors so callers never inspect driver messages.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise translate_integrity_error(e) from e
    except BaseException:
        db.rollback()
        raise

"""SQLAlchemy engine, session factory and transaction control."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..core.config import settings
from ..core.errors import TransactionFailure

logger = logging.getLogger("upstream.db")

# SQLite connections are shared across FastAPI worker threads.
CONNECT_ARGS = {"check_same_thread": False} if settings.DB_URL.startswith("sqlite") else {}

engine = create_engine(settings.DB_URL, connect_args=CONNECT_ARGS)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency that yields a session and guarantees cleanup."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class TransactionManager:
    """Explicit transaction boundary over a session.

    Outside a transaction every store write is committed on the spot. Between
    :meth:`begin` and :meth:`commit` writes are only flushed, so a
    :meth:`rollback` discards all of them together.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self._depth = 0

    @property
    def active(self) -> bool:
        return self._depth > 0

    def persist(self) -> None:
        """Make pending writes durable, or just visible while a transaction is open."""

        if self.active:
            self.db.flush()
        else:
            self.db.commit()

    def begin(self) -> None:
        if not self.active:
            # Anything written before the boundary must not be undone by a rollback.
            self.db.commit()
        self._depth += 1

    def commit(self) -> None:
        if not self.active:
            raise TransactionFailure("commit() without begin()")
        self._depth -= 1
        if not self.active:
            self.db.commit()

    def rollback(self) -> None:
        self._depth = 0
        self.db.rollback()

    @contextmanager
    def atomic(self) -> Iterator[Session]:
        """Run a block inside one transaction; failures roll back and raise ``TransactionFailure``."""

        self.begin()
        try:
            yield self.db
            self.commit()
        except Exception as exc:
            self.rollback()
            logger.warning("transaction.rolled_back", extra={"extra_data": {"error": repr(exc)}})
            if isinstance(exc, TransactionFailure):
                raise
            raise TransactionFailure(str(exc) or exc.__class__.__name__) from exc

"""Transaction primitive over the relational store.

`EntityStore` is handed to every service explicitly. A unit of work begins a
transaction, commits when the block exits normally and rolls back on any
exception, so a multi-step write is either fully visible or not at all.
Driver errors are translated into `StoreBusyError` / `StoreIntegrityError`.
"""
# db/store.py
import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from surveyhub.app.core.errors import StoreBusyError, StoreIntegrityError

logger = logging.getLogger(__name__)

# lock_not_available, deadlock_detected, serialization_failure
_BUSY_PGCODES = {"55P03", "40P01", "40001"}


def is_busy_error(exc: OperationalError) -> bool:
    if getattr(exc.orig, "pgcode", None) in _BUSY_PGCODES:
        return True
    return "locked" in str(exc.orig).lower() or "busy" in str(exc.orig).lower()


@contextmanager
def translate_store_errors() -> Iterator[None]:
    try:
        yield
    except IntegrityError as exc:
        logger.error("Integrity error, transaction rolled back: %s", exc.orig)
        raise StoreIntegrityError(str(exc.orig)) from exc
    except OperationalError as exc:
        if is_busy_error(exc):
            logger.warning("Store busy: %s", exc.orig)
            raise StoreBusyError(str(exc.orig)) from exc
        raise


class EntityStore:
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    @contextmanager
    def unit_of_work(self) -> Iterator[Session]:
        """Run the block inside one transaction: commit on success, roll back on any error."""
        session = self._session_factory()
        try:
            with translate_store_errors():
                session.begin()
                yield session
                session.commit()
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def read(self) -> Iterator[Session]:
        """Read-only snapshot. Nothing done inside the block is committed.

        Loaded objects stay usable after the block: close() detaches them
        without expiring their state.
        """
        session = self._session_factory()
        try:
            with translate_store_errors():
                session.begin()
                yield session
        finally:
            session.close()

"""
Ledger store — atomic read-then-write transactions.

Every state transition in the engine runs inside
LedgerStore.run_atomic(). The callable it is given receives
an AtomicTransaction and must issue all of its reads before
its first write. Reads always go to the database
(populate_existing), never to stale objects in the session's
identity map, so a transaction re-validates whatever an
earlier request observed.

Rows that matter for concurrency carry a version column. If
another transaction changed a row after we read it, the
flush at commit raises StaleDataError; the whole callable is
then retried from scratch, re-reading everything, up to
ATOMIC_MAX_RETRIES times before surfacing a Conflict.
"""

import logging
from typing import Any, Callable, TypeVar

from sqlalchemy import Select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from topup_store.config import get_settings
from topup_store.errors import StoreError, ConflictError, StoreTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TIMEOUT_MARKERS = ("timeout", "timed out", "database is locked", "lock wait")


class ReadAfterWriteError(RuntimeError):
    """An atomic transaction tried to read after it started writing."""


class AtomicTransaction:
    """
    Read/write handle passed to a run_atomic() callable.

    Once add() or update() has been called, any further read
    raises ReadAfterWriteError.
    """

    def __init__(self, db: Session):
        self.db = db
        self._writing = False

    def _ensure_reading(self) -> None:
        if self._writing:
            raise ReadAfterWriteError(
                "read issued after a write in the same atomic transaction"
            )

    def get(self, model: type[T], ident: Any, lock: bool = False) -> T | None:
        self._ensure_reading()
        return self.db.get(
            model, ident, populate_existing=True, with_for_update=lock
        )

    def first(self, stmt: Select) -> Any:
        self._ensure_reading()
        return self.db.execute(
            stmt.execution_options(populate_existing=True)
        ).scalars().first()

    def all(self, stmt: Select) -> list:
        self._ensure_reading()
        return list(self.db.execute(
            stmt.execution_options(populate_existing=True)
        ).scalars().all())

    def add(self, obj: T) -> T:
        self._writing = True
        self.db.add(obj)
        return obj

    def update(self, obj: T, **changes: Any) -> T:
        self._writing = True
        for field, value in changes.items():
            setattr(obj, field, value)
        return obj


class LedgerStore:
    """
    Transaction boundary for the engine.

    The store owns commit and rollback: a callable either
    commits completely or leaves nothing behind.
    """

    def __init__(self, db: Session, max_retries: int | None = None):
        self.db = db
        if max_retries is None:
            max_retries = get_settings().ATOMIC_MAX_RETRIES
        self.max_retries = max_retries

    def get(self, model: type[T], ident: Any) -> T | None:
        return self.db.get(model, ident)

    def query(self, stmt: Select) -> list:
        return list(self.db.execute(stmt).scalars().all())

    def run_atomic(self, fn: Callable[[AtomicTransaction], T]) -> T:
        attempt = 0
        while True:
            txn = AtomicTransaction(self.db)
            try:
                result = fn(txn)
                self.db.commit()
                return result
            except StoreError:
                self.db.rollback()
                raise
            except StaleDataError as e:
                self.db.rollback()
                if attempt < self.max_retries:
                    attempt += 1
                    logger.warning(
                        "Concurrent write detected, retrying transaction "
                        "(attempt %d of %d)", attempt, self.max_retries
                    )
                    continue
                raise ConflictError(
                    "The records changed while this request was "
                    "processed, please retry"
                ) from e
            except IntegrityError as e:
                self.db.rollback()
                raise ConflictError(
                    "The request conflicts with existing data"
                ) from e
            except OperationalError as e:
                self.db.rollback()
                if _is_timeout(e):
                    raise StoreTimeoutError(
                        "The transaction timed out"
                    ) from e
                raise ConflictError("The transaction could not complete") from e
            except Exception:
                self.db.rollback()
                raise


def _is_timeout(error: OperationalError) -> bool:
    text = str(error.orig if error.orig is not None else error).lower()
    return any(marker in text for marker in _TIMEOUT_MARKERS)

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from moneyapi import errors
from .config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL serialization_failure / deadlock_detected
_RETRYABLE_PGCODES = {"40001", "40P01"}


def is_conflict(exc: SQLAlchemyError) -> bool:
    """True when ``exc`` means another unit touched the same rows first."""
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        if getattr(orig, "pgcode", None) in _RETRYABLE_PGCODES:
            return True
        if getattr(orig, "sqlstate", None) in _RETRYABLE_PGCODES:
            return True
        message = str(orig).lower()
        if "database is locked" in message or "deadlock" in message:
            return True
    return False


class AtomicUnit:
    """Scoped transactional boundary for balance-changing work.

    ``scope()`` opens a fresh session, commits when the block exits normally
    and rolls back on any exception; the session is always closed.
    ``run(fn)`` executes ``fn(session)`` inside ``scope()`` and retries only
    on :class:`errors.ConflictError`, up to ``attempts`` times.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        attempts: int | None = None,
        max_wait: float | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.attempts = max(1, attempts if attempts is not None else settings.BALANCE_RETRY_ATTEMPTS)
        self.max_wait = settings.BALANCE_RETRY_MAX_WAIT if max_wait is None else max_wait

    @contextmanager
    def scope(self) -> Iterator[Session]:
        try:
            with self.session_factory.begin() as session:
                # results are handed back after the session closes
                session.expire_on_commit = False
                yield session
        except errors.LedgerError:
            raise
        except SQLAlchemyError as exc:
            if is_conflict(exc):
                raise errors.ConflictError(str(exc)) from exc
            logger.exception("storage failure inside atomic unit")
            raise errors.StorageFault(f"storage failure: {exc.__class__.__name__}") from exc

    def run(self, fn: Callable[[Session], T]) -> T:
        retrying = Retrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_random_exponential(multiplier=0.01, max=self.max_wait),
            retry=retry_if_exception_type(errors.ConflictError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            return retrying(self._run_once, fn)
        except errors.ConflictError as exc:
            logger.error("giving up after %d conflicting attempts: %s", self.attempts, exc.reason)
            raise errors.StorageFault(
                f"concurrent update conflict persisted after {self.attempts} attempts"
            ) from exc

    def _run_once(self, fn: Callable[[Session], T]) -> T:
        with self.scope() as session:
            return fn(session)

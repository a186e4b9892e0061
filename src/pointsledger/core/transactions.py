"""Atomic unit runner used by every mutating service operation."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from .config import get_settings
from .database import WRITE_UNIT_OPTION
from .errors import Busy, PointsEconomyError, StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

# lock_not_available, serialization_failure, deadlock_detected
_CONTENTION_SQLSTATES = {"55P03", "40001", "40P01"}


def is_lock_contention(exc: DBAPIError) -> bool:
    """Return True when the driver error means another unit holds the rows."""

    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code in _CONTENTION_SQLSTATES:
        return True
    message = str(orig).lower()
    return "database is locked" in message or "database table is locked" in message


def run_atomic(
    session: Session,
    operation: Callable[[], T],
    *,
    name: str = "atomic unit",
    attempts: Optional[int] = None,
) -> T:
    """Run ``operation`` and commit it as one all-or-nothing unit.

    The session must not carry uncommitted work from elsewhere: whatever is
    pending is committed or discarded together with ``operation``. A unit
    started on a fresh session takes the write lock up front on SQLite.
    """

    settings = get_settings()
    max_attempts = attempts or settings.max_transaction_attempts

    for attempt in range(1, max_attempts + 1):
        try:
            if not session.in_transaction():
                session.connection(execution_options={WRITE_UNIT_OPTION: True})
            result = operation()
            session.commit()
            return result
        except PointsEconomyError:
            session.rollback()
            raise
        except OperationalError as exc:
            session.rollback()
            if not is_lock_contention(exc):
                logger.exception("%s failed on storage error", name)
                raise StorageUnavailable() from exc
            if attempt == max_attempts:
                logger.warning("%s gave up after %s contended attempts", name, attempt)
                raise Busy() from exc
            logger.warning("%s hit lock contention (attempt %s/%s)", name, attempt, max_attempts)
            time.sleep(settings.retry_backoff_seconds * attempt)
        except DBAPIError as exc:
            session.rollback()
            logger.exception("%s failed on storage error", name)
            raise StorageUnavailable() from exc
        except Exception:
            session.rollback()
            raise

    raise Busy()  # pragma: no cover - loop always returns or raises

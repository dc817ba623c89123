from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import (
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import Session

from hall_reservations.core import config
from hall_reservations.core.errors import (
    ConflictError,
    HallBookingError,
    StoreError,
    StoreTimeoutError,
)
from hall_reservations.core.logging_config import get_logger

logger = get_logger()


def resolve_timeout(timeout: float | None) -> float:
    timeout = config.STORE_TIMEOUT_SECONDS if timeout is None else timeout
    if timeout <= 0:
        raise StoreTimeoutError("Store timeout must be positive")
    return timeout


def _apply_statement_timeout(db: Session, timeout: float):
    # SQLite gets its busy timeout from connect_args instead
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text(f"SET LOCAL statement_timeout = {int(timeout * 1000)}"))


@contextmanager
def _translated_store_errors(db: Session, action: str):
    try:
        yield
    except HallBookingError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Store rejected conflicting write: {e.orig}")
        raise ConflictError("The write conflicts with existing data") from e
    except (OperationalError, PoolTimeoutError) as e:
        db.rollback()
        logger.error(f"Store unavailable or timed out while {action}: {e}")
        raise StoreTimeoutError(f"The store did not respond in time while {action}") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store error while {action}: {e}")
        raise StoreError(f"The store failed while {action}") from e
    except Exception:
        db.rollback()
        raise


@contextmanager
def store_transaction(db: Session, timeout: float | None = None):
    """
    Run the enclosed block as one unit of work.

    Commits on success. On any failure the session is rolled back, so no
    partial write survives, and store exceptions are translated into the core
    error taxonomy.
    """
    timeout = resolve_timeout(timeout)
    with _translated_store_errors(db, "writing; nothing was written"):
        _apply_statement_timeout(db, timeout)
        yield db
        db.commit()


@contextmanager
def store_read(db: Session, timeout: float | None = None):
    """
    Read-only counterpart of ``store_transaction``: same timeout and error
    translation, no commit.

    A read that joins an already open transaction keeps that transaction's
    statement timeout.
    """
    timeout = resolve_timeout(timeout)
    with _translated_store_errors(db, "reading"):
        if not db.in_transaction():
            _apply_statement_timeout(db, timeout)
        yield db

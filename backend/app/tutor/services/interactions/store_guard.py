"""Translate SQLAlchemy failures into ``StoreUnavailableError``."""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tutor.errors import StoreUnavailableError
from tutor.logger_config import get_logger

logger = get_logger(__name__)


@contextmanager
def store_operation(db: Session, operation: str) -> Iterator[None]:
    """Roll back the session and raise StoreUnavailableError if the block fails."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Store operation %s failed: %s", operation, exc)
        raise StoreUnavailableError(operation, str(exc)) from exc

"""Request-scoped SQLAlchemy session for the message, summary and conversation stores."""

from typing import Generator

from sqlalchemy.orm import Session

from tutor.repositories.interactions.database import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Yield one session per request.

    Work left uncommitted when the request fails is rolled back before the
    session is closed.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

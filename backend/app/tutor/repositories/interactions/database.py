"""
Database configuration module.

Sets up the SQLAlchemy engine, session factory, and declarative base for the
conversation, message and summary tables.

Exports:
    - engine: SQLAlchemy database engine.
    - SessionLocal: Session factory for database interactions.
    - Base: Declarative base class for defining ORM models.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

from tutor.configs import settings

DB_URL = settings.DATABASE_URL
IS_SQLITE = DB_URL.startswith("sqlite")

connect_args = {"check_same_thread": False, "timeout": 15} if IS_SQLITE else {}

engine = create_engine(DB_URL, connect_args=connect_args, pool_pre_ping=not IS_SQLITE)

if IS_SQLITE:

    @event.listens_for(engine, "connect")
    def _sqlite_pragmas(dbapi_connection, _connection_record) -> None:
        # chat requests and background compaction write concurrently
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

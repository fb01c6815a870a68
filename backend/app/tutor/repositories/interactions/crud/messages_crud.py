"""
CRUD operations for the message log in the database.

This module provides a `CRUDMessages` class with methods to:
- Append a message.
- Retrieve the most recent messages of a conversation (newest first).
- Retrieve messages older than a cutoff (oldest first).
- Count the messages of a conversation.
- Delete every message up to a sequence id.

Every read accepts an optional `after_id`: rows at or below it are already
folded into the conversation summary and must be ignored.
"""

from typing import List, Optional
from sqlalchemy import asc, desc
from sqlalchemy.orm import Query, Session
from tutor.repositories.interactions.models.messages_model import Messages
from tutor.repositories.interactions.schemas.messages_schema import MessagesCreate


class CRUDMessages:
    """Repository class for handling database operations related to messages."""

    def __init__(self) -> None:
        """Init class."""
        pass

    def _live(self, db: Session, session_id: str, after_id: Optional[int]) -> Query:
        query = db.query(Messages).filter(Messages.session_id == session_id)
        if after_id is not None:
            query = query.filter(Messages.id > after_id)
        return query

    def get(self, db: Session, message_id: int) -> Optional[Messages]:
        """
        Retrieve a message by its ID.

        Args:
            db (Session): The database session.
            message_id (int): The ID of the message to retrieve.

        Returns:
            Optional[Messages]: The message object if found, otherwise None.
        """
        return db.query(Messages).filter(Messages.id == message_id).first()

    def create(self, db: Session, message_in: MessagesCreate) -> Messages:
        """
        Append a new message to the log.

        Args:
            db (Session): The database session.
            message_in (MessagesCreate): The message data to be inserted.

        Returns:
            Messages: The newly created message object, with its sequence id.
        """
        db_message = Messages(**message_in.model_dump())
        db.add(db_message)
        db.commit()
        db.refresh(db_message)
        return db_message

    def get_recent(
        self,
        db: Session,
        session_id: str,
        limit: int,
        after_id: Optional[int] = None,
    ) -> List[Messages]:
        """
        Retrieve the last `limit` messages of a conversation, newest first.

        Args:
            db (Session): The database session.
            session_id (str): The conversation to read.
            limit (int): Maximum number of messages to return.
            after_id (Optional[int]): Ignore messages with an id at or below it.

        Returns:
            List[Messages]: Messages ordered by descending sequence id.
        """
        return (
            self._live(db, session_id, after_id)
            .order_by(desc(Messages.id))
            .limit(limit)
            .all()
        )

    def get_older_than(
        self,
        db: Session,
        session_id: str,
        cutoff_id: int,
        after_id: Optional[int] = None,
    ) -> List[Messages]:
        """Return messages with an id strictly below `cutoff_id`, oldest first."""
        return (
            self._live(db, session_id, after_id)
            .filter(Messages.id < cutoff_id)
            .order_by(asc(Messages.id))
            .all()
        )

    def get_page(
        self,
        db: Session,
        session_id: str,
        limit: int,
        after_id: Optional[int] = None,
    ) -> List[Messages]:
        """Return up to `limit` messages in chronological order, starting from the oldest."""
        return (
            self._live(db, session_id, after_id)
            .order_by(asc(Messages.id))
            .limit(limit)
            .all()
        )

    def count(
        self, db: Session, session_id: str, after_id: Optional[int] = None
    ) -> int:
        """Count the messages of a conversation."""
        total: int = self._live(db, session_id, after_id).count()
        return total

    def delete_up_to(self, db: Session, session_id: str, message_id: int) -> int:
        """
        Delete every message of a conversation with an id at or below `message_id`.

        Args:
            db (Session): The database session.
            session_id (str): The conversation to prune.
            message_id (int): Inclusive upper bound of the deleted range.

        Returns:
            int: Number of deleted rows.
        """
        deleted: int = (
            db.query(Messages)
            .filter(Messages.session_id == session_id, Messages.id <= message_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

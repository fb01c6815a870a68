"""This module provides the MessageService class, the message store used by the tutor core."""

from sqlalchemy.orm import Session
from typing import List, Optional
from fastapi import Depends
from pydantic import ValidationError as SchemaValidationError

from tutor.errors import ValidationError
from tutor.repositories.interactions.crud.messages_crud import CRUDMessages
from tutor.repositories.interactions.models.messages_model import Messages
from tutor.repositories.interactions.schemas.messages_schema import MessagesCreate
from tutor.services.interactions.store_guard import store_operation

ROLES = ("user", "assistant", "system")


class MessageService:
    """Service layer for the append-only message log.

    Store failures surface as StoreUnavailableError; the session is rolled
    back before the error leaves this class.
    """

    def __init__(self, message_repository: CRUDMessages):
        """
        Initialize the MessageService with a CRUD repository.

        Args:
            message_repository (CRUDMessages): Dependency-injected repository
            for message-related database operations.
        """
        self.message_repository = message_repository

    def validate(self, session_id: str, role: str, content: str) -> MessagesCreate:
        """Check a message without touching the store; raise ValidationError if it is invalid."""
        if role not in ROLES:
            raise ValidationError(f"지원하지 않는 role: {role}")
        if not content or not content.strip():
            raise ValidationError("content 필요")
        try:
            return MessagesCreate(session_id=session_id, role=role, content=content)
        except SchemaValidationError as exc:
            raise ValidationError(str(exc)) from exc

    def append(self, db: Session, session_id: str, role: str, content: str) -> int:
        """
        Append a message and return its sequence id.

        Args:
            db (Session): The database session.
            session_id (str): ID of the conversation.
            role (str): "user", "assistant" or "system".
            content (str): Message text, must not be blank.

        Returns:
            int: The sequence id assigned by the store.
        """
        message_in = self.validate(session_id, role, content)

        with store_operation(db, "append"):
            message = self.message_repository.create(db, message_in)
        sequence_id: int = message.id
        return sequence_id

    def fetch_recent(
        self,
        db: Session,
        session_id: str,
        limit: int,
        after_id: Optional[int] = None,
    ) -> List[Messages]:
        """Return at most `limit` messages newer than `after_id`, newest first."""
        if limit <= 0:
            return []
        with store_operation(db, "fetch_recent"):
            return self.message_repository.get_recent(db, session_id, limit, after_id)

    def fetch_older_than(
        self,
        db: Session,
        session_id: str,
        cutoff_id: int,
        after_id: Optional[int] = None,
    ) -> List[Messages]:
        """Return messages with an id below `cutoff_id` (and above `after_id`), oldest first."""
        with store_operation(db, "fetch_older_than"):
            return self.message_repository.get_older_than(
                db, session_id, cutoff_id, after_id
            )

    def fetch_page(
        self,
        db: Session,
        session_id: str,
        limit: int,
        after_id: Optional[int] = None,
    ) -> List[Messages]:
        """Return up to `limit` live messages in chronological order."""
        if limit <= 0:
            return []
        with store_operation(db, "fetch_page"):
            return self.message_repository.get_page(db, session_id, limit, after_id)

    def count(self, db: Session, session_id: str, after_id: Optional[int] = None) -> int:
        """Count messages of a conversation newer than `after_id`."""
        with store_operation(db, "count"):
            return self.message_repository.count(db, session_id, after_id)

    def delete_up_to(self, db: Session, session_id: str, message_id: int) -> int:
        """Delete messages with an id at or below `message_id`; return how many went."""
        with store_operation(db, "delete_up_to"):
            return self.message_repository.delete_up_to(db, session_id, message_id)


# Dependency Injection for FastAPI
def get_messages_service(
    message_repository: CRUDMessages = Depends(),
) -> MessageService:
    """Retrieve an instance of MessageService with the provided repository."""
    return MessageService(message_repository)

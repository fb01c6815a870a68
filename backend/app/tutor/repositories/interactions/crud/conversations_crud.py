"""
CRUD operations for managing conversations in the database.

This module provides a `CRUDConversations` class with methods to:
- Retrieve a conversation by its handle.
- Create or refresh a conversation (upsert).
"""

from typing import Optional
from sqlalchemy.orm import Session
from tutor.repositories.interactions.models.conversations_model import Conversations
from tutor.repositories.interactions.schemas.conversations_schema import (
    ConversationUpsert,
)


class CRUDConversations:
    """Repository class for handling database operations related to conversations."""

    def __init__(self) -> None:
        """Init class."""
        pass

    def get(self, db: Session, session_id: str) -> Optional[Conversations]:
        """
        Retrieve a conversation by its handle.

        Args:
            db (Session): The database session.
            session_id (str): The conversation handle.

        Returns:
            Optional[Conversations]: The conversation if found, otherwise None.
        """
        return db.query(Conversations).filter(Conversations.id == session_id).first()

    def upsert(self, db: Session, conversation_in: ConversationUpsert) -> Conversations:
        """Insert a new conversation if it doesn't exist, or update only the `last_interacted_at` field if it does exist.

        Args:
            db (Session): The database session.
            conversation_in (ConversationUpsert): Handle, owner and interaction time.

        Returns:
            Conversations: The created or updated conversation object.
        """
        conversation = self.get(db, conversation_in.id)
        if conversation:
            conversation.last_interacted_at = conversation_in.last_interacted_at
        else:
            conversation = Conversations(**conversation_in.model_dump())
            db.add(conversation)

        db.commit()
        db.refresh(conversation)
        return conversation

"""This module provides the ConversationService class for addressing conversations."""

from sqlalchemy.orm import Session
from typing import Optional
from fastapi import Depends
from datetime import datetime, timezone
from pydantic import ValidationError as SchemaValidationError

from tutor.errors import AuthorizationError, NotFoundError, ValidationError
from tutor.repositories.interactions.crud.conversations_crud import CRUDConversations
from tutor.repositories.interactions.models.conversations_model import Conversations
from tutor.repositories.interactions.schemas.conversations_schema import (
    ConversationUpsert,
)
from tutor.services.interactions.store_guard import store_operation


class ConversationService:
    """Resolve conversation handles and check ownership before any store mutation."""

    def __init__(self, conversation_repository: CRUDConversations):
        """
        Initialize the ConversationService with a CRUD repository.

        Args:
            conversation_repository (CRUDConversations): Repository for conversation operations.
        """
        self.conversation_repository = conversation_repository

    def get(self, db: Session, session_id: str) -> Optional[Conversations]:
        """Retrieve a conversation by its handle."""
        with store_operation(db, "get_conversation"):
            return self.conversation_repository.get(db, session_id)

    def resolve(
        self,
        db: Session,
        session_id: str,
        owner: Optional[str] = None,
        check_owner: bool = True,
    ) -> Conversations:
        """
        Return the conversation if it exists and `owner` may access it.

        Args:
            db (Session): The database session.
            session_id (str): The conversation handle.
            owner (Optional[str]): The requesting principal.
            check_owner (bool): False only for trusted internal callers
                (the compaction worker), which act for no principal.

        Returns:
            Conversations: The resolved conversation.
        """
        if not session_id or not session_id.strip():
            raise ValidationError("sessionId 필요")
        conversation = self.get(db, session_id)
        if conversation is None:
            raise NotFoundError(f"대화를 찾을 수 없습니다: {session_id}")
        if check_owner:
            self._check_owner(conversation, owner)
        return conversation

    def upsert(
        self,
        db: Session,
        session_id: str,
        owner: Optional[str] = None,
        last_interacted_at: Optional[datetime] = None,
    ) -> Conversations:
        """
        Create the conversation on first use, or refresh its `last_interacted_at`.

        An existing conversation owned by someone else is rejected before
        anything is written.
        """
        if not session_id or not session_id.strip():
            raise ValidationError("sessionId 필요")
        existing = self.get(db, session_id)
        if existing is not None:
            self._check_owner(existing, owner)

        try:
            conversation_in = ConversationUpsert(
                id=session_id,
                owner=owner,
                last_interacted_at=last_interacted_at or datetime.now(timezone.utc),
            )
        except SchemaValidationError as exc:
            raise ValidationError(str(exc)) from exc
        with store_operation(db, "upsert_conversation"):
            return self.conversation_repository.upsert(db, conversation_in)

    def _check_owner(self, conversation: Conversations, owner: Optional[str]) -> None:
        if conversation.owner and conversation.owner != owner:
            raise AuthorizationError("이 대화에 접근할 권한이 없습니다.")


# Dependency for FastAPI
def get_conversations_service(
    conversation_repository: CRUDConversations = Depends(),
) -> ConversationService:
    """Retrieve an instance of ConversationService with the provided repository."""
    return ConversationService(conversation_repository)

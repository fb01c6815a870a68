"""This module defines the Messages model, the append-only chat log."""

from sqlalchemy import Column, ForeignKey, Integer, String, TIMESTAMP, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from tutor.repositories.interactions.database import Base


class Messages(Base):  # type: ignore
    """
    Represents a single chat message.

    Attributes:
        id (int): Global ascending sequence id. Ordering, not density, matters:
            compaction deletes leave gaps.
        session_id (str): ID of the conversation.
        role (str): One of "user", "assistant" or "system".
        content (str): The text content of the message.
        created_at (timestamp): When the message was written.
    """

    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(
        String(64), ForeignKey("conversations.id"), nullable=False, index=True
    )
    role = Column(String(16), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=False), server_default=func.now())

    conversation = relationship("Conversations", back_populates="messages")

    # Ids must never be reused after the newest rows are deleted.
    __table_args__ = {"sqlite_autoincrement": True}

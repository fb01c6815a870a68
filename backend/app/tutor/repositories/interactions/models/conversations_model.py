"""This module defines the Conversations model for addressing a chat thread."""

from sqlalchemy import Column, String, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from tutor.repositories.interactions.database import Base


class Conversations(Base):  # type: ignore
    """
    Represents a conversation (a student's chat thread) in the database.

    Attributes:
        id (str): Opaque handle of the conversation (the client's session or thread id).
        owner (str): Principal that owns the conversation, if any.
        created_at (timestamp): When the conversation was first seen.
        last_interacted_at (timestamp): Last time a message was appended.
    """

    __tablename__ = "conversations"

    id = Column(String(64), primary_key=True)
    owner = Column(String(120), nullable=True)
    created_at = Column(TIMESTAMP(timezone=False), server_default=func.now())
    last_interacted_at = Column(TIMESTAMP(timezone=False), nullable=True)

    messages = relationship(
        "Messages", back_populates="conversation", cascade="all, delete"
    )
    summary = relationship(
        "Summaries", back_populates="conversation", cascade="all, delete", uselist=False
    )

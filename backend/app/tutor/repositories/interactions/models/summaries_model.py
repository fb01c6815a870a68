"""This module defines the Summaries model holding one rolling summary per conversation."""

from sqlalchemy import Column, ForeignKey, Integer, String, TIMESTAMP, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from tutor.repositories.interactions.database import Base


class Summaries(Base):  # type: ignore
    """
    Represents the rolling summary of a conversation.

    Attributes:
        session_id (str): ID of the conversation (one summary per conversation).
        summary (str): Digest of every message folded so far.
        last_msg_id (int): High-water mark, the id of the last folded message.
        updated_at (timestamp): Last time the summary was replaced.
    """

    __tablename__ = "summaries"

    session_id = Column(String(64), ForeignKey("conversations.id"), primary_key=True)
    summary = Column(Text, nullable=False)
    last_msg_id = Column(Integer, nullable=False)
    updated_at = Column(
        TIMESTAMP(timezone=False), server_default=func.now(), onupdate=func.now()
    )

    conversation = relationship("Conversations", back_populates="summary")

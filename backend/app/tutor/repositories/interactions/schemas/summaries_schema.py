"""Pydantic model describing a summary replacement."""

from pydantic import BaseModel, Field, StringConstraints
from typing import Annotated


class SummariesUpsert(BaseModel):
    """
    Represents a full replacement of a conversation summary.

    Attributes:
        session_id (str): ID of the conversation.
        summary (str): New summary text, replacing the previous one wholesale.
        last_msg_id (int): New high-water mark.
    """

    session_id: Annotated[str, StringConstraints(min_length=1, max_length=64)]
    summary: str
    last_msg_id: int = Field(..., ge=0)

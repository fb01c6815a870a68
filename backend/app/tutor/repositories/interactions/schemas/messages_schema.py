"""
This module defines Pydantic models for handling message-related data.

It includes base validation for message attributes and the model used to create messages.
"""

from pydantic import BaseModel, StringConstraints
from typing import Annotated, Literal

Role = Literal["user", "assistant", "system"]


class MessagesBase(BaseModel):
    """
    Represents the base structure for a message.

    Attributes:
        session_id (str): ID of the conversation.
        role (str): Who wrote the message ("user", "assistant" or "system").
        content (str): The message content.
    """

    session_id: Annotated[str, StringConstraints(min_length=1, max_length=64)]
    role: Role
    content: Annotated[str, StringConstraints(min_length=1)]


class MessagesCreate(MessagesBase):
    """
    Represents the data required to create a new message.

    Inherits all fields from MessagesBase.
    """

    pass

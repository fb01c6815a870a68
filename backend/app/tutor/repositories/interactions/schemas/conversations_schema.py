"""Pydantic model for creating or touching a conversation."""

from pydantic import BaseModel, StringConstraints
from typing import Annotated, Optional
from datetime import datetime


class ConversationUpsert(BaseModel):
    """
    Represents the data needed to create a conversation or refresh it.

    Attributes:
        id (str): Opaque conversation handle.
        owner (str): Principal owning the conversation, if known.
        last_interacted_at (timestamp): Last time the conversation received a message.
    """

    id: Annotated[str, StringConstraints(min_length=1, max_length=64)]
    owner: Optional[Annotated[str, StringConstraints(max_length=120)]] = None
    last_interacted_at: datetime

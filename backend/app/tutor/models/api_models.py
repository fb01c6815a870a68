"""Request and response models for the chat controllers.

Request fields accept the camelCase names sent by the web client
(``sessionId``) as well as their snake_case names.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime


class ChatRequest(BaseModel):
    """A new student turn."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId", description="Conversation handle.")
    message: str = Field(..., description="The student's new question.")
    owner: Optional[str] = Field(
        default=None, description="Principal already authenticated by the caller."
    )
    persist_user_message: bool = Field(
        default=True,
        alias="persistUserMessage",
        description="Store the question in the log (false when the client stored it already).",
    )


class ChatResponse(BaseModel):
    """Data model for the response of a chat turn."""

    content: str = Field(..., description="Assistant reply, or the error shown to the student.")
    error: Optional[str] = Field(default=None, description="Completion failure detail.")
    persisted: bool = Field(..., description="Whether the reply reached the message store.")
    compaction: Optional[str] = Field(
        default=None, description="How compaction was scheduled (queued/background)."
    )


class MessageCreateRequest(BaseModel):
    """A message appended directly to the log."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    role: str
    content: str
    owner: Optional[str] = None


class MessageModel(BaseModel):
    """Data model for a stored message."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    role: str
    content: str
    created_at: Optional[datetime] = None


class MessagesResponse(BaseModel):
    """Live messages of a conversation, oldest first."""

    messages: List[MessageModel]


class MessageCreatedResponse(BaseModel):
    """Acknowledgement of an appended message."""

    ok: bool = True
    id: int


class ContextResponse(BaseModel):
    """What the model currently sees: summary plus recent live messages."""

    summary: str
    last_msg_id: Optional[int] = None
    recent: List[MessageModel]


class SummarizeRequest(BaseModel):
    """Ask for a compaction of one conversation."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    owner: Optional[str] = None


class SummarizeResponse(BaseModel):
    """Outcome of a compaction request."""

    skipped: bool
    reason: Optional[str] = None
    summary: Optional[str] = None
    last_msg_id: Optional[int] = None
    pruned: bool = False
    warn: Optional[str] = None

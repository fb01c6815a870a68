"""ORM models for conversations, messages and summaries."""

from .conversations_model import Conversations
from .messages_model import Messages
from .summaries_model import Summaries

__all__ = ["Conversations", "Messages", "Summaries"]

"""Run one chat turn: resolve the conversation, build context, ask the model, store the reply."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from tutor.agents.context_assembler import ContextAssembler, get_context_assembler
from tutor.agents.llm.base_llm import BaseLLM
from tutor.agents.llm.upstage_llm import get_llm
from tutor.configs import Settings, get_settings
from tutor.errors import CompletionFailedError, StoreUnavailableError, ValidationError
from tutor.logger_config import get_logger
from tutor.models.api_models import ChatRequest
from tutor.services.interactions.conversations_services import (
    ConversationService,
    get_conversations_service,
)
from tutor.services.interactions.messages_services import (
    MessageService,
    get_messages_service,
)

logger = get_logger(__name__)

COMPLETION_ERROR_PREFIX = "오류: "


@dataclass
class ChatTurnResult:
    """Reply for the student plus what happened to it."""

    content: str
    error: Optional[str] = None
    persisted: bool = True


class ChatTutor:
    """Handle a student's question against the tutoring model."""

    def __init__(
        self,
        conversations_service: ConversationService,
        messages_service: MessageService,
        context_assembler: ContextAssembler,
        llm: BaseLLM,
        temperature: float = 0.2,
    ) -> None:
        self.conversations_service = conversations_service
        self.messages_service = messages_service
        self.context_assembler = context_assembler
        self.llm = llm
        self.temperature = temperature

    def run(self, db: Session, request: ChatRequest) -> ChatTurnResult:
        """Execute the turn.

        Validation, identity and store-read failures are raised before the
        model is called and before anything is written. A completion failure
        becomes an assistant message explaining the error. A failure to store
        the reply does not discard it.
        """
        session_id = (request.session_id or "").strip()
        message = (request.message or "").strip()
        if not session_id or not message:
            raise ValidationError("sessionId/message 필요")

        self.conversations_service.resolve(db, session_id, request.owner)
        context = self.context_assembler.assemble(db, session_id, message)

        if request.persist_user_message:
            self.messages_service.append(db, session_id, "user", message)

        error: Optional[str] = None
        try:
            content = self.llm.complete(
                context.system_prompt,
                context.prior_turns,
                context.new_turn,
                temperature=self.temperature,
            )
        except CompletionFailedError as exc:
            logger.error("Completion failed for %s: %s", session_id, exc.detail)
            error = exc.detail
            content = f"{COMPLETION_ERROR_PREFIX}{exc.detail}"

        persisted = True
        try:
            self.messages_service.append(db, session_id, "assistant", content)
        except StoreUnavailableError as exc:
            logger.error(
                "Reply for %s could not be stored, returning it anyway: %s",
                session_id,
                exc.detail,
            )
            persisted = False

        return ChatTurnResult(content=content, error=error, persisted=persisted)


def get_chat_tutor(
    conversations_service: ConversationService = Depends(get_conversations_service),
    messages_service: MessageService = Depends(get_messages_service),
    context_assembler: ContextAssembler = Depends(get_context_assembler),
    llm: BaseLLM = Depends(get_llm),
    settings: Settings = Depends(get_settings),
) -> ChatTutor:
    """FastAPI dependency that wires the chat tutor."""
    return ChatTutor(
        conversations_service,
        messages_service,
        context_assembler,
        llm,
        temperature=settings.context_config().temperature,
    )

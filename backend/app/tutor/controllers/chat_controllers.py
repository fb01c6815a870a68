"""Chat, context, message and summarize endpoints.

Core errors are answered with the HTTP status they carry; anything else is
logged and answered with a 500.
"""

import secrets

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    Header,
    HTTPException,
    Query,
    status,
)
from sqlalchemy.orm import Session
from typing import NoReturn, Optional

from tutor.agents.context_assembler import ContextAssembler, get_context_assembler
from tutor.agents.summarization_compactor import (
    CompactionResult,
    SummarizationCompactor,
    get_summarization_compactor,
)
from tutor.configs import Settings, get_settings
from tutor.errors import AuthorizationError, TutorError
from tutor.logger_config import get_logger
from tutor.models.api_models import (
    ChatRequest,
    ChatResponse,
    ContextResponse,
    MessageCreateRequest,
    MessageCreatedResponse,
    MessageModel,
    MessagesResponse,
    SummarizeRequest,
    SummarizeResponse,
)
from tutor.repositories.interactions.dependencies import get_db
from tutor.services.chat_tutor import ChatTutor, get_chat_tutor
from tutor.services.compaction.compaction_scheduler import (
    CompactionScheduler,
    get_compaction_scheduler,
)
from tutor.services.interactions.conversations_services import (
    ConversationService,
    get_conversations_service,
)
from tutor.services.interactions.messages_services import (
    MessageService,
    get_messages_service,
)
from tutor.services.interactions.summaries_services import (
    SummaryService,
    get_summaries_service,
)

logger = get_logger(__name__)

chat_router = APIRouter(prefix="/api", tags=["Chat"])


def _raise_http(exc: Exception) -> NoReturn:
    if isinstance(exc, TutorError):
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    logger.exception("Unexpected error: %s", exc)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
    ) from exc


@chat_router.post(
    "/chat",
    responses={200: {"model": ChatResponse, "description": "Successful Response"}},
)
def chat(
    data: ChatRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    chat_tutor: ChatTutor = Depends(get_chat_tutor),
    compaction_scheduler: CompactionScheduler = Depends(get_compaction_scheduler),
) -> ChatResponse:
    """
    Answer a student's question and schedule compaction of the conversation.

    Args:
        data (ChatRequest): Conversation handle and the new question.

    Returns:
        ChatResponse with the assistant reply (or the error shown as a reply).
    """
    try:
        result = chat_tutor.run(db, data)
    except Exception as e:
        _raise_http(e)

    compaction: Optional[str] = None
    try:
        compaction = compaction_scheduler.schedule(
            background_tasks, data.session_id.strip()
        )
    except Exception as e:
        logger.warning("Compaction not scheduled for %s: %s", data.session_id, e)

    return ChatResponse(
        content=result.content,
        error=result.error,
        persisted=result.persisted,
        compaction=compaction,
    )


@chat_router.get("/context")
def get_context(
    session_id: str = Query(..., alias="sessionId"),
    n: Optional[int] = Query(None, ge=0),
    owner: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    conversations_service: ConversationService = Depends(get_conversations_service),
    context_assembler: ContextAssembler = Depends(get_context_assembler),
) -> ContextResponse:
    """Return the summary and the `n` most recent live messages, oldest first.

    Without `n` the configured CHAT_CONTEXT_LIMIT applies.
    """
    try:
        conversations_service.resolve(db, session_id, owner)
        view = context_assembler.view(db, session_id, n)
    except Exception as e:
        _raise_http(e)

    return ContextResponse(
        summary=view.summary,
        last_msg_id=view.high_water_mark,
        recent=[MessageModel.model_validate(m) for m in view.recent],
    )


@chat_router.get("/messages")
def list_messages(
    session_id: str = Query(..., alias="sessionId"),
    limit: int = Query(50, ge=0),
    owner: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    conversations_service: ConversationService = Depends(get_conversations_service),
    summaries_service: SummaryService = Depends(get_summaries_service),
    messages_service: MessageService = Depends(get_messages_service),
) -> MessagesResponse:
    """Return up to `limit` live messages of a conversation, oldest first."""
    try:
        conversations_service.resolve(db, session_id, owner)
        summary = summaries_service.get(db, session_id)
        messages = messages_service.fetch_page(
            db,
            session_id,
            limit,
            after_id=summary.last_msg_id if summary else None,
        )
    except Exception as e:
        _raise_http(e)

    return MessagesResponse(messages=[MessageModel.model_validate(m) for m in messages])


@chat_router.post("/messages")
def create_message(
    data: MessageCreateRequest,
    db: Session = Depends(get_db),
    conversations_service: ConversationService = Depends(get_conversations_service),
    messages_service: MessageService = Depends(get_messages_service),
) -> MessageCreatedResponse:
    """Append a message, creating the conversation on first use."""
    try:
        session_id = data.session_id.strip()
        messages_service.validate(session_id, data.role, data.content)
        conversations_service.upsert(db, session_id, data.owner)
        message_id = messages_service.append(db, session_id, data.role, data.content)
    except Exception as e:
        _raise_http(e)

    return MessageCreatedResponse(id=message_id)


def _summarize_response(result: CompactionResult) -> SummarizeResponse:
    return SummarizeResponse(
        skipped=result.skipped,
        reason=result.reason,
        summary=result.summary,
        last_msg_id=result.high_water_mark,
        pruned=result.pruned,
        warn=result.warning.detail if result.warning else None,
    )


@chat_router.post("/summarize")
def summarize(
    data: SummarizeRequest,
    db: Session = Depends(get_db),
    conversations_service: ConversationService = Depends(get_conversations_service),
    compactor: SummarizationCompactor = Depends(get_summarization_compactor),
) -> SummarizeResponse:
    """Compact a conversation now. Skips are reported, not treated as errors."""
    try:
        session_id = data.session_id.strip()
        conversations_service.resolve(db, session_id, data.owner)
        result = compactor.compact(db, session_id)
    except Exception as e:
        _raise_http(e)

    return _summarize_response(result)


@chat_router.post("/internal/summarize", include_in_schema=False)
def summarize_internal(
    data: SummarizeRequest,
    x_internal_token: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    conversations_service: ConversationService = Depends(get_conversations_service),
    compactor: SummarizationCompactor = Depends(get_summarization_compactor),
    settings: Settings = Depends(get_settings),
) -> SummarizeResponse:
    """
    Compact a conversation on behalf of the compaction worker.

    The queue only knows conversation ids, so the owner check is replaced by
    the shared INTERNAL_API_TOKEN sent in the X-Internal-Token header.
    """
    try:
        expected = settings.INTERNAL_API_TOKEN
        if not expected or not x_internal_token or not secrets.compare_digest(
            x_internal_token, expected
        ):
            raise AuthorizationError("내부 토큰이 올바르지 않습니다.")
        session_id = data.session_id.strip()
        conversations_service.resolve(db, session_id, check_owner=False)
        result = compactor.compact(db, session_id)
    except Exception as e:
        _raise_http(e)

    return _summarize_response(result)

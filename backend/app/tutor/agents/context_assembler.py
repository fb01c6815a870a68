"""Build the bounded prompt for a chat turn: instructions, summary, live tail and new question."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from tutor.agents.llm.base_llm import build_chat_messages
from tutor.agents.prompt_loader import prompt_loader
from tutor.configs import ContextConfig, Settings, get_settings
from tutor.errors import ValidationError
from tutor.repositories.interactions.models.messages_model import Messages
from tutor.services.interactions.messages_services import (
    MessageService,
    get_messages_service,
)
from tutor.services.interactions.summaries_services import (
    SummaryService,
    get_summaries_service,
)

ROLE_LABELS: Dict[str, str] = {
    "user": "학생",
    "assistant": "도우미",
    "system": "시스템",
}
DEFAULT_ROLE_LABEL = ROLE_LABELS["user"]

SUMMARY_BLOCK = "\n[요약]\n{summary}\n"
NEW_TURN_PREFIX = "새 질문: "


def role_label(role: Optional[str]) -> str:
    """Map a message role to its display label; unknown roles get the student label."""
    return ROLE_LABELS.get(role or "", DEFAULT_ROLE_LABEL)


def render_turn(role: Optional[str], content: str) -> str:
    """Render a message as ``<label>: <content>``."""
    return f"{role_label(role)}: {content}"


@dataclass
class AssembledContext:
    """Everything the completion gateway needs for one turn."""

    system_prompt: str
    prior_turns: List[str] = field(default_factory=list)
    new_turn: str = ""

    def to_chat_messages(self) -> List[Dict[str, str]]:
        """Return the system/user chat payload sent to the model."""
        return build_chat_messages(self.system_prompt, self.prior_turns, self.new_turn)


@dataclass
class ContextView:
    """Read-only view of what the model currently sees for a conversation."""

    summary: str
    high_water_mark: Optional[int]
    recent: List[Messages]


class ContextAssembler:
    """Combine the rolling summary and the live tail into a bounded prompt.

    Messages at or below the summary's high-water mark are never read, even
    when a failed cleanup left them in the message table.
    """

    def __init__(
        self,
        messages_service: MessageService,
        summaries_service: SummaryService,
        system_prompt: str,
        config: ContextConfig,
    ) -> None:
        self.messages_service = messages_service
        self.summaries_service = summaries_service
        self.system_prompt = system_prompt
        self.config = config

    def assemble(
        self,
        db: Session,
        session_id: str,
        new_user_text: str,
        window_size: Optional[int] = None,
    ) -> AssembledContext:
        """Assemble the prompt for `new_user_text`.

        Any store failure propagates as StoreUnavailableError before a
        prompt exists, so a partial context is never produced.
        """
        view = self.view(db, session_id, window_size)

        system_prompt = self.system_prompt
        if view.summary:
            system_prompt += SUMMARY_BLOCK.format(summary=view.summary)

        return AssembledContext(
            system_prompt=system_prompt,
            prior_turns=[render_turn(m.role, m.content) for m in view.recent],
            new_turn=f"{NEW_TURN_PREFIX}{new_user_text}",
        )

    def view(
        self, db: Session, session_id: str, window_size: Optional[int] = None
    ) -> ContextView:
        """Return the summary and at most N live messages, oldest first."""
        n = self.config.window_size if window_size is None else window_size
        if n < 0:
            raise ValidationError("n 은 0 이상이어야 합니다.")

        summary = self.summaries_service.get(db, session_id)
        high_water_mark = summary.last_msg_id if summary else None
        recent = self.messages_service.fetch_recent(
            db, session_id, n, after_id=high_water_mark
        )
        # fetched newest first; the model must read them chronologically
        recent = list(reversed(recent))

        return ContextView(
            summary=summary.summary if summary else "",
            high_water_mark=high_water_mark,
            recent=recent,
        )


def get_context_assembler(
    messages_service: MessageService = Depends(get_messages_service),
    summaries_service: SummaryService = Depends(get_summaries_service),
    settings: Settings = Depends(get_settings),
) -> ContextAssembler:
    """FastAPI dependency wiring the assembler with the tutoring prompt."""
    return ContextAssembler(
        messages_service,
        summaries_service,
        prompt_loader.get_system_prompt("tutor"),
        settings.context_config(),
    )

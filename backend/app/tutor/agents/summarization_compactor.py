"""Fold old messages into the rolling summary and prune them from the live log.

A conversation starts FRESH (no summary). Once its live tail reaches the
threshold, everything but the most recent ``keep_recent`` messages is
summarized, the summary is upserted, and only then are the folded messages
deleted. From there on it stays COMPACTED and compaction keeps recurring.

Upsert-then-delete ordering means a concurrent reader sees either the full
tail or the summary covering it, never a gap. The upsert is a compare-and-swap
on the high-water mark, so a second compactor racing on the same
conversation backs off instead of double-processing the range.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from tutor.agents.context_assembler import render_turn
from tutor.agents.llm.base_llm import BaseLLM
from tutor.agents.llm.upstage_llm import get_llm
from tutor.agents.prompt_loader import PromptLoader, prompt_loader
from tutor.configs import CompactionConfig, Settings, get_settings
from tutor.errors import CompactionWarning, StoreUnavailableError
from tutor.logger_config import get_logger
from tutor.services.interactions.messages_services import (
    MessageService,
    get_messages_service,
)
from tutor.services.interactions.summaries_services import (
    SummaryService,
    get_summaries_service,
)

logger = get_logger(__name__)

SUMMARY_PLACEHOLDER = "(요약 없음)"

SKIPPED = "skipped"
COMPACTED = "compacted"


@dataclass
class CompactionResult:
    """Outcome of one compaction attempt."""

    session_id: str
    status: str
    reason: Optional[str] = None
    summary: Optional[str] = None
    high_water_mark: Optional[int] = None
    pruned: bool = False
    deleted: int = 0
    warning: Optional[CompactionWarning] = None

    @property
    def skipped(self) -> bool:
        return self.status == SKIPPED


class SummarizationCompactor:
    """Summarize everything but the recent tail of a conversation."""

    def __init__(
        self,
        messages_service: MessageService,
        summaries_service: SummaryService,
        llm: BaseLLM,
        config: CompactionConfig,
        prompts: Optional[PromptLoader] = None,
    ) -> None:
        self.messages_service = messages_service
        self.summaries_service = summaries_service
        self.llm = llm
        self.config = config
        prompts = prompts or prompt_loader
        self.system_prompt = prompts.get("summarizer", "system")
        self.request_prefix = prompts.get("summarizer", "request")
        self.previous_summary_header = prompts.get(
            "summarizer", "previous_summary_header"
        )

    def compact(self, db: Session, session_id: str) -> CompactionResult:
        """Compact a conversation if its live tail crossed the threshold.

        Raises StoreUnavailableError when a read or the summary upsert fails
        (nothing is committed in that case) and CompletionFailedError when the
        summarization call fails.
        """
        current = self.summaries_service.get(db, session_id)
        previous_mark = current.last_msg_id if current else None
        previous_summary = current.summary if current else ""

        count = self.messages_service.count(db, session_id, after_id=previous_mark)
        if count < self.config.threshold:
            reason = f"count({count}) < {self.config.threshold}"
            logger.info("Compaction of %s skipped: %s", session_id, reason)
            return CompactionResult(session_id, SKIPPED, reason=reason)

        recent = self.messages_service.fetch_recent(
            db, session_id, self.config.keep_recent, after_id=previous_mark
        )
        cutoff = min(m.id for m in recent) if recent else sys.maxsize
        old = self.messages_service.fetch_older_than(
            db, session_id, cutoff, after_id=previous_mark
        )
        if not old:
            reason = "nothing to summarize"
            logger.info("Compaction of %s skipped: %s", session_id, reason)
            return CompactionResult(session_id, SKIPPED, reason=reason)

        transcript = "\n".join(render_turn(m.role, m.content) for m in old)
        summary = self.llm.complete(
            self.system_prompt,
            [],
            self._summary_request(transcript, previous_summary),
            temperature=self.config.temperature,
            placeholder=SUMMARY_PLACEHOLDER,
        )

        high_water_mark = old[-1].id
        swapped = self.summaries_service.upsert(
            db,
            session_id,
            summary,
            high_water_mark,
            expected_high_water_mark=previous_mark,
        )
        if not swapped:
            reason = "concurrent compaction"
            logger.warning(
                "Compaction of %s lost the race at mark %s, backing off.",
                session_id,
                previous_mark,
            )
            return CompactionResult(session_id, SKIPPED, reason=reason)

        result = CompactionResult(
            session_id,
            COMPACTED,
            summary=summary,
            high_water_mark=high_water_mark,
        )
        try:
            result.deleted = self.messages_service.delete_up_to(
                db, session_id, high_water_mark
            )
        except StoreUnavailableError as exc:
            result.warning = CompactionWarning(exc.operation, exc.detail)
            logger.warning(
                "Summary of %s stored up to %d but pruning failed: %s",
                session_id,
                high_water_mark,
                exc.detail,
            )
            return result

        result.pruned = True
        logger.info(
            "Compacted %s: %d messages folded up to id %d.",
            session_id,
            len(old),
            high_water_mark,
        )
        return result

    def _summary_request(self, transcript: str, previous_summary: str) -> str:
        if self.config.carry_forward and previous_summary:
            return (
                f"{self.request_prefix}\n\n{self.previous_summary_header}\n"
                f"{previous_summary}\n\n{transcript}"
            )
        return f"{self.request_prefix}\n\n{transcript}"


def get_summarization_compactor(
    messages_service: MessageService = Depends(get_messages_service),
    summaries_service: SummaryService = Depends(get_summaries_service),
    llm: BaseLLM = Depends(get_llm),
    settings: Settings = Depends(get_settings),
) -> SummarizationCompactor:
    """FastAPI dependency wiring the compactor."""
    return SummarizationCompactor(
        messages_service, summaries_service, llm, settings.compaction_config()
    )

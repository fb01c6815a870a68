"""Schedule compaction after a chat turn, with retries.

With Redis configured, the conversation is queued for the compaction worker
(``compaction_worker.py``). Otherwise the compaction runs after the response
is sent, through FastAPI background tasks, with its own database session.
Compaction is idempotent, so running a job more than once is harmless.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Optional

import redis
from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from tutor.agents.summarization_compactor import (
    CompactionResult,
    SummarizationCompactor,
    get_summarization_compactor,
)
from tutor.configs import CompactionConfig, Settings, get_settings
from tutor.errors import CompletionFailedError, StoreUnavailableError
from tutor.logger_config import get_logger
from tutor.repositories.interactions.database import SessionLocal
from tutor.repositories.redis.compaction_queue_crud import CompactionQueue

logger = get_logger(__name__)

QUEUED = "queued"
BACKGROUND = "background"


def run_compaction_with_retry(
    session_id: str,
    compactor: SummarizationCompactor,
    session_factory: Callable[[], Session],
    max_attempts: int = 3,
    retry_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[CompactionResult]:
    """Run a compaction, retrying transient store and completion failures.

    Returns the result of the first attempt that finished, or None once
    every attempt failed.
    """
    for attempt in range(1, max_attempts + 1):
        db = session_factory()
        try:
            return compactor.compact(db, session_id)
        except (StoreUnavailableError, CompletionFailedError) as exc:
            logger.warning(
                "Compaction of %s failed (attempt %d/%d): %s",
                session_id,
                attempt,
                max_attempts,
                exc.detail,
            )
        finally:
            db.close()
        if attempt < max_attempts:
            sleep(retry_delay * attempt)

    logger.error("Compaction of %s gave up after %d attempts.", session_id, max_attempts)
    return None


class CompactionScheduler:
    """Dispatch compaction jobs to the Redis queue or to background tasks."""

    def __init__(
        self,
        compactor: SummarizationCompactor,
        config: CompactionConfig,
        session_factory: Callable[[], Session] = SessionLocal,
        queue: Optional[CompactionQueue] = None,
    ) -> None:
        self.compactor = compactor
        self.config = config
        self.session_factory = session_factory
        self.queue = queue

    def schedule(self, background_tasks: BackgroundTasks, session_id: str) -> str:
        """Schedule a compaction of `session_id` and return how it was scheduled."""
        if self.queue is not None:
            try:
                self.queue.enqueue(
                    session_id, datetime.timestamp(datetime.now(timezone.utc))
                )
                return QUEUED
            except redis.RedisError as exc:
                logger.warning(
                    "Could not queue compaction for %s, running it in background: %s",
                    session_id,
                    exc,
                )

        background_tasks.add_task(
            run_compaction_with_retry,
            session_id,
            self.compactor,
            self.session_factory,
            self.config.max_attempts,
            self.config.retry_delay,
        )
        return BACKGROUND


@lru_cache(maxsize=None)
def _connect_queue(
    host: str, port: int, password: Optional[str], ssl: bool
) -> CompactionQueue:
    """Build one queue (and one redis connection pool) per Redis endpoint."""
    return CompactionQueue(host=host, port=port, password=password, ssl=ssl)


def get_compaction_queue(
    settings: Settings = Depends(get_settings),
) -> Optional[CompactionQueue]:
    """FastAPI dependency returning the shared Redis queue when Redis is configured."""
    if not settings.REDIS_HOST:
        return None
    return _connect_queue(
        settings.REDIS_HOST,
        settings.REDIS_PORT,
        settings.REDIS_PASSWORD,
        settings.REDIS_SSL,
    )


def get_compaction_scheduler(
    compactor: SummarizationCompactor = Depends(get_summarization_compactor),
    queue: Optional[CompactionQueue] = Depends(get_compaction_queue),
    settings: Settings = Depends(get_settings),
) -> CompactionScheduler:
    """FastAPI dependency that wires the scheduler."""
    return CompactionScheduler(
        compactor, settings.compaction_config(), SessionLocal, queue
    )

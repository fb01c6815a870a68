"""Compaction worker - reading compaction jobs from Redis and running them."""

import logging
import time

import requests

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Dict, List, Optional

from tutor.configs import settings
from tutor.repositories.redis.compaction_queue_crud import CompactionQueue

MAX_TRIES = 3
INTERNAL_TOKEN_HEADER = "X-Internal-Token"

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def request_compaction(session_id: str) -> requests.models.Response:
    """
    Ask the backend to compact one conversation.

    The internal route skips the owner check, since the queue does not know
    who owns the conversation; the shared token authenticates the worker.

    Args:
        session_id (str): The conversation to compact.

    Returns:
        Response: The backend response to POST /api/internal/summarize.
    """
    url = (
        f"http://{settings.BACKEND_HOST}{settings.ROOT_PATH_BACKEND}"
        "/api/internal/summarize"
    )
    return requests.post(
        url,
        json={"sessionId": session_id},
        headers={INTERNAL_TOKEN_HEADER: settings.INTERNAL_API_TOKEN or ""},
        timeout=120,
    )


def compact_conversation(session_id: str) -> bool:
    """Return True when the backend answered the compaction request with 200.

    A skipped compaction is a success too: the job is done either way.
    """
    try:
        response = request_compaction(session_id)
    except requests.RequestException as exc:
        logger.warning("Compaction request for %s failed: %s", session_id, exc)
        return False
    if response.status_code != 200:
        logger.warning(
            "Compaction of %s answered %d: %s",
            session_id,
            response.status_code,
            response.text,
        )
        return False
    return True


class CompactionWorker:
    """Poll the compaction queue and run jobs on a thread pool.

    Jobs are removed after a successful run or after more than MAX_TRIES
    failures; until then a failed job stays queued and is picked up again.
    A job enqueued again while it was running stays queued after success.
    """

    def __init__(self, queue: CompactionQueue, workers: int = 4) -> None:
        self.queue = queue
        self.workers = workers
        self.pool = ThreadPoolExecutor(max_workers=workers)
        self.tasks: Dict[str, "Future[bool]"] = {}
        self.started: Dict[str, float] = {}
        self.tries: Dict[str, int] = {}

    def run_once(self, now: Optional[float] = None) -> List[str]:
        """Run one polling cycle and return the jobs removed from the queue."""
        now = now if now is not None else datetime.timestamp(datetime.now(timezone.utc))
        pending = [s for s in self.queue.retrieve_jobs(older_than=now) if s not in self.tasks]
        logger.info("Compaction jobs waiting: %d", len(pending))

        while pending and len(self.tasks) < self.workers:
            session_id = pending.pop(0)
            logger.info("Starting compaction job for %s.", session_id)
            self.started[session_id] = now
            self.tasks[session_id] = self.pool.submit(compact_conversation, session_id)

        removed: List[str] = []
        for session_id in list(self.tasks.keys()):
            task = self.tasks[session_id]
            if not task.done():
                continue
            self.tasks.pop(session_id)
            started_at = self.started.pop(session_id)

            if task.result():
                self.tries.pop(session_id, None)
                if self.queue.delete_job(session_id, not_after=started_at):
                    logger.info("Compaction job for %s finished.", session_id)
                    removed.append(session_id)
                else:
                    logger.info(
                        "Compaction job for %s finished but was queued again, keeping it.",
                        session_id,
                    )
                continue

            self.tries[session_id] = self.tries.get(session_id, 0) + 1
            logger.warning(
                "Compaction job for %s failed. Attempt %d.",
                session_id,
                self.tries[session_id],
            )
            if self.tries[session_id] > MAX_TRIES:
                logger.error(
                    "Compaction job for %s failed more than %d times. Dropping it.",
                    session_id,
                    MAX_TRIES,
                )
                self.tries.pop(session_id)
                self.queue.delete_job(session_id)
                removed.append(session_id)

        return removed

    def run_forever(self, poll_seconds: float) -> None:
        """Poll the queue until the process is stopped."""
        logger.info("Starting compaction worker with %d workers.", self.workers)
        while True:
            self.run_once()
            time.sleep(poll_seconds)


def main() -> None:
    """Start the worker against the configured Redis instance."""
    assert (
        settings.REDIS_HOST is not None
    ), "Variable REDIS_HOST from env file shouldn't be None, fill in the credential."
    assert (
        settings.INTERNAL_API_TOKEN
    ), "Variable INTERNAL_API_TOKEN from env file shouldn't be empty, the backend needs it."

    queue = CompactionQueue(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD,
        ssl=settings.REDIS_SSL,
    )
    CompactionWorker(queue).run_forever(settings.CONSUMER_POLL_SECONDS)


if __name__ == "__main__":
    main()

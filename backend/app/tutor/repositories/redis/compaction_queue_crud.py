"""Module for keeping pending compaction jobs in a Redis sorted set."""

from typing import List, Optional, Union

import redis

from tutor.logger_config import get_logger

logger = get_logger(__name__)

QUEUE_KEY = "compaction_jobs"


def str_to_bool(value: str) -> bool:
    """Convert the REDIS_SSL env variable to boolean."""
    return value.lower() in ("true", "1", "yes")


class CompactionQueue:
    """Handles the Redis sorted set of conversations waiting for compaction.

    Members are conversation ids scored by enqueue time, so enqueueing a
    conversation that is already waiting only refreshes its score.
    """

    def __init__(
        self,
        host: str,
        port: int,
        password: Optional[str],
        ssl: Union[str, bool],
    ) -> None:
        """
        Initialize a connection to the Redis database.

        Args:
            host (str): The hostname or IP address of the Redis server.
            port (int): The port number of the Redis server.
            password (Optional[str]): Redis password.
            ssl (Union[str, bool]): Whether to use TLS.
        """
        ssl = str_to_bool(ssl) if isinstance(ssl, str) else ssl
        self.handler = redis.Redis(
            host=host,
            port=port,
            password=password,
            ssl=ssl,
            db=0,
            ssl_cert_reqs=None,
        )

    def enqueue(self, session_id: str, enqueued_at: float) -> None:
        """Add (or refresh) a compaction job for a conversation."""
        self.handler.zadd(QUEUE_KEY, {session_id: enqueued_at})
        logger.info("Queued compaction for %s", session_id)

    def retrieve_jobs(self, older_than: float) -> List[str]:
        """Return conversation ids enqueued at or before `older_than`, oldest first."""
        members = self.handler.zrangebyscore(QUEUE_KEY, "-inf", older_than)
        return [m.decode() if isinstance(m, bytes) else str(m) for m in members]

    def delete_job(self, session_id: str, not_after: Optional[float] = None) -> bool:
        """
        Remove a compaction job.

        With `not_after`, the job is only removed if it was not enqueued again
        after that time, so a turn that arrived while the job ran keeps it queued.

        Returns:
            bool: True if the job left the queue.
        """
        if not_after is None:
            self.handler.zrem(QUEUE_KEY, session_id)
            logger.info("Removed compaction job for %s", session_id)
            return True

        with self.handler.pipeline() as pipe:
            try:
                pipe.watch(QUEUE_KEY)
                score = pipe.zscore(QUEUE_KEY, session_id)
                if score is not None and score > not_after:
                    pipe.unwatch()
                    return False
                pipe.multi()
                pipe.zrem(QUEUE_KEY, session_id)
                pipe.execute()
            except redis.WatchError:
                logger.info("Compaction queue changed while removing %s, keeping it", session_id)
                return False
        logger.info("Removed compaction job for %s", session_id)
        return True

"""Test scheduling and retrying of background compaction."""

from unittest.mock import MagicMock, patch

import redis

from tutor.agents.summarization_compactor import COMPACTED, CompactionResult
from tutor.configs import CompactionConfig, Settings
from tutor.errors import CompletionFailedError, StoreUnavailableError
from tutor.services.compaction.compaction_scheduler import (
    BACKGROUND,
    QUEUED,
    CompactionScheduler,
    _connect_queue,
    get_compaction_queue,
    run_compaction_with_retry,
)


def test_retry_until_success_with_fresh_sessions() -> None:
    sessions = [MagicMock(), MagicMock(), MagicMock()]
    factory = MagicMock(side_effect=sessions)
    compactor = MagicMock()
    done = CompactionResult("class-3:minji", COMPACTED, high_water_mark=19)
    compactor.compact.side_effect = [
        StoreUnavailableError("count", "database is locked"),
        CompletionFailedError("timeout"),
        done,
    ]
    sleep = MagicMock()

    result = run_compaction_with_retry(
        "class-3:minji", compactor, factory, max_attempts=3, retry_delay=0.5, sleep=sleep
    )

    assert result is done
    assert [c.args[0] for c in compactor.compact.call_args_list] == sessions
    for session in sessions:
        session.close.assert_called_once()
    assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]


def test_retry_gives_up_after_max_attempts() -> None:
    compactor = MagicMock()
    compactor.compact.side_effect = CompletionFailedError("timeout")
    sleep = MagicMock()

    result = run_compaction_with_retry(
        "class-3:minji", compactor, MagicMock(), max_attempts=2, retry_delay=1.0, sleep=sleep
    )

    assert result is None
    assert compactor.compact.call_count == 2
    sleep.assert_called_once_with(1.0)


def test_schedule_uses_queue_when_available() -> None:
    queue = MagicMock()
    background_tasks = MagicMock()
    scheduler = CompactionScheduler(MagicMock(), CompactionConfig(), MagicMock(), queue)

    assert scheduler.schedule(background_tasks, "class-3:minji") == QUEUED

    assert queue.enqueue.call_args.args[0] == "class-3:minji"
    background_tasks.add_task.assert_not_called()


def test_schedule_falls_back_to_background_tasks() -> None:
    compactor = MagicMock()
    factory = MagicMock()
    background_tasks = MagicMock()
    config = CompactionConfig(max_attempts=5, retry_delay=2.0)
    scheduler = CompactionScheduler(compactor, config, factory, queue=None)

    assert scheduler.schedule(background_tasks, "class-3:minji") == BACKGROUND

    background_tasks.add_task.assert_called_once_with(
        run_compaction_with_retry, "class-3:minji", compactor, factory, 5, 2.0
    )


def test_schedule_survives_redis_outage() -> None:
    queue = MagicMock()
    queue.enqueue.side_effect = redis.ConnectionError("connection refused")
    background_tasks = MagicMock()
    scheduler = CompactionScheduler(MagicMock(), CompactionConfig(), MagicMock(), queue)

    assert scheduler.schedule(background_tasks, "class-3:minji") == BACKGROUND
    background_tasks.add_task.assert_called_once()


def test_no_queue_without_redis_host() -> None:
    assert get_compaction_queue(Settings(REDIS_HOST=None)) is None


def test_queue_is_shared_between_requests() -> None:
    settings = Settings(_env_file=None, REDIS_HOST="redis.internal", REDIS_PASSWORD="pw")
    _connect_queue.cache_clear()
    try:
        with patch("redis.Redis") as MockRedis:
            first = get_compaction_queue(settings)
            second = get_compaction_queue(settings)

        assert first is second
        MockRedis.assert_called_once()
        assert MockRedis.call_args.kwargs["host"] == "redis.internal"
    finally:
        _connect_queue.cache_clear()

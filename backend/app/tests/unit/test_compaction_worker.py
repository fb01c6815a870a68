"""Test the compaction worker polling loop."""

import threading
from concurrent.futures import wait
from typing import Dict, Optional
from unittest.mock import MagicMock, patch

import pytest
import requests
from fastapi import HTTPException

import compaction_worker
from compaction_worker import MAX_TRIES, CompactionWorker, compact_conversation
from tutor.agents.summarization_compactor import SummarizationCompactor
from tutor.configs import CompactionConfig, Settings
from tutor.controllers.chat_controllers import summarize_internal
from tutor.models.api_models import SummarizeRequest


class _Queue:
    """In-memory stand-in for the Redis sorted set."""

    def __init__(self, *session_ids: str) -> None:
        self.jobs: Dict[str, float] = {s: 0.0 for s in session_ids}
        self.delete_job = MagicMock(side_effect=self._delete)

    def retrieve_jobs(self, older_than: float):
        return [s for s, score in self.jobs.items() if score <= older_than]

    def enqueue(self, session_id: str, enqueued_at: float) -> None:
        self.jobs[session_id] = enqueued_at

    def _delete(self, session_id: str, not_after: Optional[float] = None) -> bool:
        if not_after is not None and self.jobs.get(session_id, 0.0) > not_after:
            return False
        self.jobs.pop(session_id, None)
        return True


def _settle(worker: CompactionWorker) -> None:
    wait(list(worker.tasks.values()))


def _drain(worker: CompactionWorker, cycles: int = 20) -> list:
    removed = []
    for cycle in range(cycles):
        removed += worker.run_once(now=float(cycle))
        _settle(worker)
        if not worker.queue.jobs and not worker.tasks:
            break
    return removed


def test_request_targets_internal_summarize_with_token(monkeypatch) -> None:
    monkeypatch.setattr(compaction_worker.settings, "INTERNAL_API_TOKEN", "worker-token")
    with patch("compaction_worker.requests.post") as post:
        post.return_value = MagicMock(status_code=200)

        assert compact_conversation("class-3:minji")

    url = post.call_args.args[0]
    assert url.endswith("/api/internal/summarize")
    assert post.call_args.kwargs["json"] == {"sessionId": "class-3:minji"}
    assert post.call_args.kwargs["headers"] == {"X-Internal-Token": "worker-token"}


def test_transport_error_and_error_status_are_failures() -> None:
    with patch("compaction_worker.requests.post") as post:
        post.side_effect = requests.ConnectionError("refused")
        assert not compact_conversation("class-3:minji")

        post.side_effect = None
        post.return_value = MagicMock(status_code=503, text="store down")
        assert not compact_conversation("class-3:minji")


def test_worker_compacts_owned_conversation(
    monkeypatch,
    db,
    seed_conversation,
    conversations_service,
    messages_service,
    summaries_service,
    llm,
) -> None:
    seed_conversation(count=31, owner="minji")
    monkeypatch.setattr(compaction_worker.settings, "INTERNAL_API_TOKEN", "worker-token")
    compactor = SummarizationCompactor(
        messages_service, summaries_service, llm, CompactionConfig(threshold=30, keep_recent=12)
    )
    backend_settings = Settings(_env_file=None, INTERNAL_API_TOKEN="worker-token")

    def _backend(_url, json, headers, timeout):
        try:
            summarize_internal(
                SummarizeRequest(**json),
                x_internal_token=headers["X-Internal-Token"],
                db=db,
                conversations_service=conversations_service,
                compactor=compactor,
                settings=backend_settings,
            )
        except HTTPException as exc:
            return MagicMock(status_code=exc.status_code, text=str(exc.detail))
        return MagicMock(status_code=200)

    with patch("compaction_worker.requests.post", side_effect=_backend):
        assert compact_conversation("class-3:minji")

    assert summaries_service.get(db, "class-3:minji").last_msg_id == 19
    assert messages_service.count(db, "class-3:minji") == 12


def test_successful_job_is_removed() -> None:
    queue = _Queue("class-3:minji")
    worker = CompactionWorker(queue, workers=2)

    with patch.object(
        compaction_worker, "compact_conversation", return_value=True
    ) as compact:
        removed = _drain(worker)

    assert removed == ["class-3:minji"]
    compact.assert_called_once_with("class-3:minji")
    queue.delete_job.assert_called_once_with("class-3:minji", not_after=0.0)
    assert worker.tasks == {}
    assert worker.started == {}


def test_job_queued_again_while_running_is_kept() -> None:
    queue = _Queue("class-3:minji")
    worker = CompactionWorker(queue, workers=1)

    def _compact(session_id: str) -> bool:
        # a new chat turn lands while the job runs
        queue.enqueue(session_id, 5.0)
        return True

    with patch.object(compaction_worker, "compact_conversation", side_effect=_compact):
        worker.run_once(now=1.0)
        _settle(worker)
        removed = worker.run_once(now=2.0)

    assert removed == []
    assert queue.jobs == {"class-3:minji": 5.0}
    assert "class-3:minji" not in worker.tries


def test_failing_job_is_dropped_after_max_tries() -> None:
    queue = _Queue("class-3:minji")
    worker = CompactionWorker(queue, workers=1)

    with patch.object(
        compaction_worker, "compact_conversation", return_value=False
    ) as compact:
        removed = _drain(worker)

    assert removed == ["class-3:minji"]
    assert compact.call_count == MAX_TRIES + 1
    assert queue.jobs == {}
    assert "class-3:minji" not in worker.tries


def test_pool_size_limits_running_jobs() -> None:
    queue = _Queue("a", "b", "c")
    worker = CompactionWorker(queue, workers=2)
    gate = threading.Event()

    with patch.object(
        compaction_worker, "compact_conversation", side_effect=lambda _s: gate.wait(5)
    ):
        worker.run_once(now=1.0)
        assert sorted(worker.tasks) == ["a", "b"]
        gate.set()
        _settle(worker)
        removed = _drain(worker)

    assert sorted(removed) == ["a", "b", "c"]
    assert queue.jobs == {}


def test_main_requires_internal_token(monkeypatch) -> None:
    monkeypatch.setattr(compaction_worker.settings, "REDIS_HOST", "localhost")
    monkeypatch.setattr(compaction_worker.settings, "INTERNAL_API_TOKEN", None)

    with pytest.raises(AssertionError):
        compaction_worker.main()

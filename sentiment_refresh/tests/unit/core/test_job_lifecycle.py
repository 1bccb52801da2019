import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from sentiment_refresh.core.errors import JobStateError
from sentiment_refresh.core.job_lifecycle import (
    COMPLETED,
    COMPLETED_WITH_WARNINGS,
    FAILED,
    PROCESSING,
    JobLifecycle,
)
from sentiment_refresh.models.dtos import FlushResult, RefreshRunDTO
from sentiment_refresh.storage.repository import RefreshRepository


class InMemoryRuns:
    """Backs the repository's run operations with a dict."""

    def __init__(self):
        self.runs = {}

    async def create_run(self, timeframe, keyword, trigger_source="manual"):
        run = RefreshRunDTO(
            id=uuid.uuid4(), status="queued", timeframe=timeframe, keyword=keyword,
            trigger_source=trigger_source, triggered_at=datetime.now(timezone.utc),
        )
        self.runs[run.id] = run
        return run

    async def get_run(self, run_id):
        return self.runs.get(run_id)

    async def update_run(self, run_id, values):
        run = self.runs.get(run_id)
        if run is None:
            return None
        self.runs[run_id] = run.model_copy(update=values)
        return self.runs[run_id]


@pytest.fixture
def lifecycle():
    store = InMemoryRuns()
    repository = AsyncMock(spec=RefreshRepository)
    repository.create_run.side_effect = store.create_run
    repository.get_run.side_effect = store.get_run
    repository.update_run.side_effect = store.update_run
    return JobLifecycle(repository)


@pytest.mark.asyncio
async def test_happy_path_sets_timestamps_and_counts(lifecycle):
    run = await lifecycle.create("7d", None)
    started = await lifecycle.start(run.id)
    assert started.status == PROCESSING
    assert started.started_at is not None

    counts = FlushResult(posts_processed=3, comments_processed=5, sentiments_inserted=8, aggregates_upserted=2)
    finished = await lifecycle.complete(run.id, counts, [])

    assert finished.status == COMPLETED
    assert finished.finished_at is not None
    assert finished.duration_ms is not None and finished.duration_ms >= 0
    assert (finished.posts_processed, finished.comments_processed, finished.sentiments_processed) == (3, 5, 8)
    assert finished.error is None


@pytest.mark.asyncio
async def test_warnings_produce_completed_with_warnings(lifecycle):
    run = await lifecycle.create("24h", "codex")
    await lifecycle.start(run.id)

    finished = await lifecycle.complete(run.id, FlushResult(), ["[a] Failed to fetch posts: x", "[b] oops"])

    assert finished.status == COMPLETED_WITH_WARNINGS
    assert finished.error == "[a] Failed to fetch posts: x | [b] oops"


@pytest.mark.asyncio
async def test_fail_records_error(lifecycle):
    run = await lifecycle.create("30d", None)
    await lifecycle.start(run.id)

    failed = await lifecycle.fail(run.id, "Reddit auth failed (401)")

    assert failed.status == FAILED
    assert failed.error == "Reddit auth failed (401)"
    assert failed.finished_at is not None


@pytest.mark.asyncio
async def test_queued_run_can_fail_directly(lifecycle):
    run = await lifecycle.create("7d", None)
    assert (await lifecycle.fail(run.id, "setup broke")).status == FAILED


@pytest.mark.asyncio
async def test_duration_is_measured_from_start(lifecycle):
    run = await lifecycle.create("7d", None)
    await lifecycle.start(run.id)
    store_run = await lifecycle.get(run.id)
    lifecycle.repository.get_run.side_effect = None
    lifecycle.repository.get_run.return_value = store_run.model_copy(
        update={"started_at": datetime.now(timezone.utc) - timedelta(seconds=2)}
    )
    lifecycle.repository.update_run.side_effect = lambda run_id, values: store_run.model_copy(update=values)

    finished = await lifecycle.complete(run.id, FlushResult(), [])

    assert finished.duration_ms >= 2000


@pytest.mark.asyncio
@pytest.mark.parametrize("terminal", ["complete", "fail"])
async def test_terminal_runs_cannot_transition(lifecycle, terminal):
    run = await lifecycle.create("7d", None)
    await lifecycle.start(run.id)
    if terminal == "complete":
        await lifecycle.complete(run.id, FlushResult(), [])
    else:
        await lifecycle.fail(run.id, "boom")

    with pytest.raises(JobStateError):
        await lifecycle.start(run.id)
    with pytest.raises(JobStateError):
        await lifecycle.fail(run.id, "again")


@pytest.mark.asyncio
async def test_queued_run_cannot_complete(lifecycle):
    run = await lifecycle.create("7d", None)
    with pytest.raises(JobStateError):
        await lifecycle.complete(run.id, FlushResult(), [])


@pytest.mark.asyncio
async def test_unknown_run_is_a_state_error(lifecycle):
    with pytest.raises(JobStateError):
        await lifecycle.start(uuid.uuid4())

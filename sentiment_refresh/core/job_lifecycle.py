"""Refresh run state machine backed by the ``refresh_jobs`` table."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional

from sentiment_refresh.core.errors import JobStateError
from sentiment_refresh.models.dtos import FlushResult, RefreshRunDTO
from sentiment_refresh.storage.repository import RefreshRepository

logger = logging.getLogger(__name__)

QUEUED = "queued"
PROCESSING = "processing"
COMPLETED = "completed"
COMPLETED_WITH_WARNINGS = "completed_with_warnings"
FAILED = "failed"

TERMINAL_STATUSES: FrozenSet[str] = frozenset({COMPLETED, COMPLETED_WITH_WARNINGS, FAILED})

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    QUEUED: frozenset({PROCESSING, FAILED}),
    PROCESSING: TERMINAL_STATUSES,
    COMPLETED: frozenset(),
    COMPLETED_WITH_WARNINGS: frozenset(),
    FAILED: frozenset(),
}

WARNING_SEPARATOR = " | "


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class JobLifecycle:
    """
    Owns every status change of a refresh run.

    ``queued -> processing -> completed | completed_with_warnings | failed``.
    A queued run may also go straight to ``failed`` when setup breaks before
    processing starts.
    """

    def __init__(self, repository: RefreshRepository):
        self.repository = repository

    async def create(self, timeframe: str, keyword: Optional[str], trigger_source: str = "manual") -> RefreshRunDTO:
        run = await self.repository.create_run(timeframe, keyword, trigger_source)
        logger.info(f"Created refresh run {run.id} (timeframe={timeframe}, keyword={keyword!r})")
        return run

    async def get(self, run_id: uuid.UUID) -> Optional[RefreshRunDTO]:
        return await self.repository.get_run(run_id)

    async def start(self, run_id: uuid.UUID) -> RefreshRunDTO:
        run = await self._require(run_id)
        return await self._transition(run, PROCESSING, {"started_at": datetime.now(timezone.utc)})

    async def complete(self, run_id: uuid.UUID, counts: FlushResult, warnings: List[str]) -> RefreshRunDTO:
        """Finish a run, with ``completed_with_warnings`` when any warning was recorded."""
        status = COMPLETED_WITH_WARNINGS if warnings else COMPLETED
        run = await self._require(run_id)
        values = self._finish_values(run)
        values.update({
            "posts_processed": counts.posts_processed,
            "comments_processed": counts.comments_processed,
            "sentiments_processed": counts.sentiments_inserted,
            "error": WARNING_SEPARATOR.join(warnings) if warnings else None,
        })
        return await self._transition(run, status, values)

    async def fail(self, run_id: uuid.UUID, error: str) -> RefreshRunDTO:
        run = await self._require(run_id)
        values = self._finish_values(run)
        values["error"] = error
        return await self._transition(run, FAILED, values)

    async def _require(self, run_id: uuid.UUID) -> RefreshRunDTO:
        run = await self.repository.get_run(run_id)
        if run is None:
            raise JobStateError(f"Refresh run {run_id} does not exist")
        return run

    @staticmethod
    def _finish_values(run: RefreshRunDTO) -> Dict[str, object]:
        finished_at = datetime.now(timezone.utc)
        reference = run.started_at or run.triggered_at
        duration_ms = max(0, int((finished_at - _as_utc(reference)).total_seconds() * 1000))
        return {"finished_at": finished_at, "duration_ms": duration_ms}

    async def _transition(self, run: RefreshRunDTO, target: str, values: Dict[str, object]) -> RefreshRunDTO:
        run_id = run.id
        if target not in ALLOWED_TRANSITIONS.get(run.status, frozenset()):
            raise JobStateError(f"Illegal refresh run transition {run.status} -> {target} for run {run_id}")

        updated = await self.repository.update_run(run_id, {**values, "status": target})
        if updated is None:
            raise JobStateError(f"Refresh run {run_id} disappeared during transition to {target}")
        logger.info(f"Refresh run {run_id}: {run.status} -> {target}")
        return updated

"""
Refresh trigger and status API endpoints.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from sentiment_refresh.core.errors import ConfigError
from sentiment_refresh.core.job_lifecycle import FAILED, JobLifecycle
from sentiment_refresh.core.pipeline import RefreshPipeline
from sentiment_refresh.models.dtos import RefreshOutcome, RefreshRequest, RefreshRunDTO
from sentiment_refresh.storage.repository import RefreshRepository
from sentiment_refresh.utils.db_session import get_db_session

router = APIRouter()
logger = logging.getLogger(__name__)


async def get_refresh_pipeline(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> RefreshPipeline:
    """Build a pipeline bound to the request's database session and the app-wide scorer."""
    exporter = getattr(request.app.state, "prometheus_exporter", None)
    scorer = getattr(request.app.state, "scorer", None)
    return RefreshPipeline(db_session=session, scorer=scorer, prometheus_exporter=exporter)


async def get_repository(session: AsyncSession = Depends(get_db_session)) -> RefreshRepository:
    return RefreshRepository(session=session)


async def get_lifecycle(repository: RefreshRepository = Depends(get_repository)) -> JobLifecycle:
    return JobLifecycle(repository)


@router.post(
    "",
    response_model=RefreshOutcome,
    summary="Trigger a refresh run",
    description="Runs the refresh pipeline synchronously and returns its outcome.",
    responses={400: {"description": "Invalid timeframe or missing credentials"}, 500: {"model": RefreshOutcome}},
)
async def trigger_refresh(
    payload: Optional[RefreshRequest] = None,
    pipeline: RefreshPipeline = Depends(get_refresh_pipeline),
):
    payload = payload or RefreshRequest()
    try:
        outcome = await pipeline.run(
            timeframe=payload.timeframe,
            keyword=payload.keyword,
            trigger_source="api",
        )
    except ConfigError as e:
        logger.warning(f"Rejected refresh trigger: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    if outcome.status == FAILED:
        return JSONResponse(status_code=500, content=outcome.model_dump(mode="json"))
    return outcome


@router.get(
    "/{run_id}",
    response_model=RefreshRunDTO,
    summary="Get refresh run status",
)
async def get_refresh_run(
    run_id: uuid.UUID,
    lifecycle: JobLifecycle = Depends(get_lifecycle),
):
    run = await lifecycle.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Refresh run {run_id} not found")
    return run

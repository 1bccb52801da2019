"""
Refresh pipeline orchestrator.

Validates the trigger, opens a run record, authenticates against the
upstream API, walks every configured subreddit in turn and finally flushes
all drafts and aggregates to the store.
"""
import asyncio
import logging
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from sentiment_refresh.config.settings import Settings, settings
from sentiment_refresh.core.aggregator import Aggregator
from sentiment_refresh.core.content_filter import normalize_keyword
from sentiment_refresh.core.errors import ConfigError
from sentiment_refresh.core.job_lifecycle import FAILED, JobLifecycle
from sentiment_refresh.core.persistence import PersistenceOrchestrator
from sentiment_refresh.core.reddit_client import RateLimitedClient
from sentiment_refresh.core.sentiment_labeler import Scorer, VaderScorer
from sentiment_refresh.core.subreddit_processor import SubredditProcessor
from sentiment_refresh.core.timeframes import cutoff_epoch, validate_timeframe
from sentiment_refresh.core.token_manager import TokenManager
from sentiment_refresh.models.dtos import (
    CommunityResult,
    FlushResult,
    RefreshCounts,
    RefreshOutcome,
    RefreshRunDTO,
)
from sentiment_refresh.storage.repository import RefreshRepository

logger = logging.getLogger(__name__)

NO_COMMUNITIES_MESSAGE = "No subreddits configured. Seed the table first."


class RefreshPipeline:
    """
    Orchestrates one refresh run end to end.

    Args:
        db_session: Optional shared session handed to the repository
        repository: Optional pre-built repository (overrides ``db_session``)
        scorer: ``score(text) -> compound`` callable, VADER by default
        http_client: Optional ``httpx.AsyncClient``; one is opened per run otherwise
        app_settings: Settings to read credentials and limits from
        prometheus_exporter: Optional Prometheus exporter for metrics
    """

    def __init__(
        self,
        db_session: Optional[AsyncSession] = None,
        repository: Optional[RefreshRepository] = None,
        scorer: Optional[Scorer] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        app_settings: Settings = settings,
        prometheus_exporter=None,
    ):
        self.settings = app_settings
        self.repository = repository or RefreshRepository(session=db_session)
        self.lifecycle = JobLifecycle(self.repository)
        self.persistence = PersistenceOrchestrator(self.repository)
        self.scorer = scorer or VaderScorer()
        self._http_client = http_client
        self.prometheus_exporter = prometheus_exporter

    async def run(
        self,
        timeframe: Optional[str] = None,
        keyword: Optional[str] = None,
        trigger_source: str = "manual",
    ) -> RefreshOutcome:
        """
        Execute a refresh run.

        Args:
            timeframe: One of '24h', '7d', '30d'; defaults to '7d'
            keyword: Optional keyword filter, matched case-insensitively
            trigger_source: Recorded on the run, e.g. 'manual', 'api', 'cli'

        Returns:
            The outcome of the run. Fatal errors are reported with status
            ``failed`` rather than raised.

        Raises:
            ConfigError: For an unsupported timeframe or missing credentials.
                No run record is created in that case.
        """
        timeframe = validate_timeframe(timeframe)
        keyword = normalize_keyword(keyword)
        problems = self.settings.validate_credentials()
        if problems:
            raise ConfigError("; ".join(problems))

        run = await self.lifecycle.create(timeframe, keyword, trigger_source)
        collected = CommunityResult()
        counts = FlushResult()

        try:
            await self.lifecycle.start(run.id)
            if self._http_client is not None:
                counts = await self._execute(self._http_client, timeframe, keyword, collected)
            else:
                async with httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT_SECONDS) as client:
                    counts = await self._execute(client, timeframe, keyword, collected)
            final = await self.lifecycle.complete(run.id, counts, collected.warnings)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(f"Refresh run {run.id} failed: {e}", exc_info=True)
            final = await self._mark_failed(run, str(e))
            return self._outcome(final, timeframe, keyword, counts, collected.warnings, error=str(e))

        logger.info(
            f"Refresh run {run.id} finished with status {final.status}: "
            f"{counts.posts_processed} posts, {counts.comments_processed} comments, "
            f"{counts.sentiments_inserted} sentiments, {counts.aggregates_upserted} aggregates"
        )
        return self._outcome(final, timeframe, keyword, counts, collected.warnings, error=final.error)

    async def _execute(
        self,
        http_client: httpx.AsyncClient,
        timeframe: str,
        keyword: Optional[str],
        collected: CommunityResult,
    ) -> FlushResult:
        token_manager = TokenManager(
            http_client=http_client,
            client_id=self.settings.REDDIT_CLIENT_ID,
            client_secret=self.settings.REDDIT_CLIENT_SECRET,
            user_agent=self.settings.REDDIT_USER_AGENT,
            token_url=self.settings.REDDIT_TOKEN_URL,
            username=self.settings.REDDIT_USERNAME or None,
            password=self.settings.REDDIT_PASSWORD or None,
            prometheus_exporter=self.prometheus_exporter,
        )
        await token_manager.refresh()

        client = RateLimitedClient(
            http_client=http_client,
            token_manager=token_manager,
            user_agent=self.settings.REDDIT_USER_AGENT,
            api_base=self.settings.REDDIT_API_BASE,
            max_attempts=self.settings.MAX_FETCH_ATTEMPTS,
            base_delay=self.settings.REQUEST_DELAY_SECONDS,
            prometheus_exporter=self.prometheus_exporter,
        )
        processor = SubredditProcessor(
            client=client,
            scorer=self.scorer,
            max_posts=self.settings.MAX_POSTS,
            max_comments=self.settings.MAX_COMMENTS,
            request_delay=self.settings.REQUEST_DELAY_SECONDS,
            prometheus_exporter=self.prometheus_exporter,
        )

        communities = await self.repository.list_communities()
        if not communities:
            raise ConfigError(NO_COMMUNITIES_MESSAGE)

        since_epoch = cutoff_epoch(timeframe)
        aggregator = Aggregator()
        for index, community in enumerate(communities):
            logger.info(f"Processing subreddit {community.name} ({index + 1}/{len(communities)})")
            collected.extend(await processor.process(community, since_epoch, keyword, aggregator))
            if index < len(communities) - 1:
                await asyncio.sleep(self.settings.REQUEST_DELAY_SECONDS)

        return await self.persistence.flush(collected, aggregator, timeframe)

    async def _mark_failed(self, run: RefreshRunDTO, error: str) -> RefreshRunDTO:
        try:
            return await self.lifecycle.fail(run.id, error)
        except Exception:  # pylint: disable=broad-except
            logger.error(f"Could not record failure of refresh run {run.id}", exc_info=True)
            return run.model_copy(update={"status": FAILED, "error": error})

    def _outcome(
        self,
        run: RefreshRunDTO,
        timeframe: str,
        keyword: Optional[str],
        counts: FlushResult,
        warnings,
        error: Optional[str],
    ) -> RefreshOutcome:
        if self.prometheus_exporter:
            self.prometheus_exporter.record_run(run.status)
        return RefreshOutcome(
            run_id=run.id,
            status=run.status,
            timeframe=timeframe,
            keyword=keyword,
            counts=RefreshCounts(
                posts=counts.posts_processed,
                comments=counts.comments_processed,
                sentiments=counts.sentiments_inserted,
                aggregates=counts.aggregates_upserted,
            ),
            warnings=list(warnings),
            error=error,
            duration_ms=run.duration_ms,
        )

"""
Store operations used by the refresh pipeline.

Every write commits on its own; callers that need "all or nothing" semantics
have to build them on top. Upserts use the dialect-specific
``INSERT ... ON CONFLICT`` (PostgreSQL in production, SQLite in tests).
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import delete, func, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from sentiment_refresh.models import (
    CommentORM,
    CommunityDTO,
    CommunityORM,
    DailyAggregateORM,
    PostORM,
    RefreshRunDTO,
    RefreshRunORM,
    SentimentScoreORM,
)
from sentiment_refresh.utils.db_session import get_db_session_context_manager

logger = logging.getLogger(__name__)

CHUNK_SIZE = 100

POST_UPDATE_COLUMNS = (
    "subreddit_id", "title", "author", "posted_at", "score",
    "comment_count", "permalink", "raw_json", "updated_at",
)
COMMENT_UPDATE_COLUMNS = ("post_id", "author", "posted_at", "body", "raw_json")
AGGREGATE_UPDATE_COLUMNS = ("positive", "neutral", "negative", "activity_count")


def chunked(items: Sequence[Any], size: int = CHUNK_SIZE) -> Iterable[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _with_ids(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{**row, "id": row.get("id") or uuid.uuid4()} for row in rows]


class RefreshRepository:
    """
    Thin async data-access layer over the refresh tables.

    Args:
        session: Optional shared ``AsyncSession``. When omitted every call
            opens (and closes) its own session from the cached factory.
    """

    def __init__(self, session: Optional[AsyncSession] = None):
        self._shared_session = session

    def _session(self):
        return get_db_session_context_manager(existing_session=self._shared_session)

    @staticmethod
    def _insert(session: AsyncSession, model):
        if session.get_bind().dialect.name == "sqlite":
            return sqlite.insert(model)
        return postgresql.insert(model)

    async def _upsert(
        self,
        model,
        rows: List[Dict[str, Any]],
        conflict_columns: Sequence[str],
        update_columns: Sequence[str],
    ) -> int:
        if not rows:
            return 0
        written = 0
        async with self._session() as session:
            for chunk in chunked(_with_ids(rows)):
                stmt = self._insert(session, model).values(list(chunk))
                stmt = stmt.on_conflict_do_update(
                    index_elements=list(conflict_columns),
                    set_={column: stmt.excluded[column] for column in update_columns},
                )
                await session.execute(stmt)
                written += len(chunk)
            await session.commit()
        return written

    async def _ids_by_reddit_id(self, model, reddit_ids: Iterable[str]) -> Dict[str, uuid.UUID]:
        wanted = sorted(set(reddit_ids))
        found: Dict[str, uuid.UUID] = {}
        if not wanted:
            return found
        async with self._session() as session:
            for chunk in chunked(wanted):
                result = await session.execute(
                    select(model.reddit_id, model.id).where(model.reddit_id.in_(list(chunk)))
                )
                for reddit_id, internal_id in result.all():
                    found[reddit_id] = internal_id
        return found

    async def _delete_in(self, column, values: Iterable[Any], *extra_criteria) -> int:
        wanted = list(values)
        if not wanted:
            return 0
        deleted = 0
        async with self._session() as session:
            for chunk in chunked(wanted):
                result = await session.execute(
                    delete(column.class_)
                    .where(column.in_(list(chunk)), *extra_criteria)
                    .execution_options(synchronize_session=False)
                )
                deleted += result.rowcount or 0
            await session.commit()
        return deleted

    # Communities

    async def list_communities(self) -> List[CommunityDTO]:
        async with self._session() as session:
            result = await session.execute(select(CommunityORM).order_by(CommunityORM.name))
            return [CommunityDTO.model_validate(row) for row in result.scalars().all()]

    async def seed_communities(self, names: Iterable[str]) -> int:
        """Insert any of ``names`` that are not configured yet. Returns the number inserted."""
        canonical = sorted({name.strip().lower() for name in names if name and name.strip()})
        if not canonical:
            return 0
        async with self._session() as session:
            existing = await session.execute(
                select(CommunityORM.name).where(CommunityORM.name.in_(canonical))
            )
            known = set(existing.scalars().all())
            missing = [name for name in canonical if name not in known]
            for name in missing:
                session.add(CommunityORM(name=name, display_name=f"r/{name}", reddit_path=f"/r/{name}"))
            await session.commit()
        if missing:
            logger.info(f"Seeded {len(missing)} subreddit(s): {', '.join(missing)}")
        return len(missing)

    # Posts and comments

    async def upsert_posts(self, rows: List[Dict[str, Any]]) -> int:
        return await self._upsert(PostORM, rows, ["reddit_id"], POST_UPDATE_COLUMNS)

    async def get_post_ids(self, reddit_ids: Iterable[str]) -> Dict[str, uuid.UUID]:
        return await self._ids_by_reddit_id(PostORM, reddit_ids)

    async def upsert_comments(self, rows: List[Dict[str, Any]]) -> int:
        return await self._upsert(CommentORM, rows, ["reddit_id"], COMMENT_UPDATE_COLUMNS)

    async def get_comment_ids(self, reddit_ids: Iterable[str]) -> Dict[str, uuid.UUID]:
        return await self._ids_by_reddit_id(CommentORM, reddit_ids)

    # Sentiments

    async def delete_sentiments_for_posts(self, post_ids: Iterable[uuid.UUID]) -> int:
        return await self._delete_in(SentimentScoreORM.post_id, post_ids)

    async def delete_sentiments_for_comments(self, comment_ids: Iterable[uuid.UUID]) -> int:
        return await self._delete_in(SentimentScoreORM.comment_id, comment_ids)

    async def insert_sentiments(self, rows: List[Dict[str, Any]]) -> int:
        if not rows:
            return 0
        async with self._session() as session:
            for chunk in chunked(_with_ids(rows)):
                await session.execute(insert(SentimentScoreORM), list(chunk))
            await session.commit()
        return len(rows)

    async def count_sentiments(self) -> int:
        async with self._session() as session:
            result = await session.execute(select(func.count()).select_from(SentimentScoreORM))
            return result.scalar_one()

    # Daily aggregates

    async def delete_daily_aggregates(self, timeframe: str, subreddit_ids: Iterable[uuid.UUID]) -> int:
        return await self._delete_in(
            DailyAggregateORM.subreddit_id,
            subreddit_ids,
            DailyAggregateORM.timeframe == timeframe,
        )

    async def upsert_daily_aggregates(self, rows: List[Dict[str, Any]]) -> int:
        return await self._upsert(
            DailyAggregateORM,
            rows,
            ["subreddit_id", "timeframe", "bucket_start"],
            AGGREGATE_UPDATE_COLUMNS,
        )

    async def list_daily_aggregates(self, timeframe: Optional[str] = None) -> List[DailyAggregateORM]:
        async with self._session() as session:
            stmt = select(DailyAggregateORM).order_by(
                DailyAggregateORM.subreddit_id, DailyAggregateORM.bucket_start
            ).execution_options(populate_existing=True)
            if timeframe is not None:
                stmt = stmt.where(DailyAggregateORM.timeframe == timeframe)
            result = await session.execute(stmt)
            return list(result.scalars().all())

    # Refresh runs

    async def create_run(
        self, timeframe: str, keyword: Optional[str], trigger_source: str = "manual"
    ) -> RefreshRunDTO:
        async with self._session() as session:
            run = RefreshRunORM(
                id=uuid.uuid4(),
                timeframe=timeframe,
                keyword=keyword,
                trigger_source=trigger_source,
                status="queued",
                triggered_at=datetime.now(timezone.utc),
                posts_processed=0,
                comments_processed=0,
                sentiments_processed=0,
            )
            session.add(run)
            await session.commit()
            await session.refresh(run)
            return RefreshRunDTO.model_validate(run)

    async def update_run(self, run_id: uuid.UUID, values: Dict[str, Any]) -> Optional[RefreshRunDTO]:
        async with self._session() as session:
            run = await session.get(RefreshRunORM, run_id, populate_existing=True)
            if run is None:
                return None
            for key, value in values.items():
                setattr(run, key, value)
            await session.commit()
            await session.refresh(run)
            return RefreshRunDTO.model_validate(run)

    async def get_run(self, run_id: uuid.UUID) -> Optional[RefreshRunDTO]:
        async with self._session() as session:
            run = await session.get(RefreshRunORM, run_id, populate_existing=True)
            return RefreshRunDTO.model_validate(run) if run is not None else None

"""
End-of-run flush of draft records into the store.

Writes happen in a fixed order: posts, then comments (re-keyed to the
internal post ids), then replacement of sentiment rows, then replacement of
the daily aggregate rows. Each step commits on its own.
"""
import logging
import uuid
from typing import Any, Dict, Iterable, List, Set, TypeVar

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from sentiment_refresh.core.aggregator import Aggregator
from sentiment_refresh.core.errors import PersistenceError
from sentiment_refresh.models.dtos import (
    CommentDraft,
    CommunityResult,
    FlushResult,
    PostDraft,
    SentimentDraft,
)
from sentiment_refresh.storage.repository import RefreshRepository

logger = logging.getLogger(__name__)

DraftT = TypeVar("DraftT", bound=BaseModel)


def dedupe_by_reddit_id(drafts: Iterable[DraftT]) -> List[DraftT]:
    """Keep one draft per ``reddit_id``; a later draft replaces an earlier one in place."""
    latest: Dict[str, DraftT] = {}
    for draft in drafts:
        latest[draft.reddit_id] = draft
    return list(latest.values())


class PersistenceOrchestrator:
    """Turns a run's drafts and aggregator into store writes."""

    def __init__(self, repository: RefreshRepository):
        self.repository = repository

    async def flush(self, result: CommunityResult, aggregator: Aggregator, timeframe: str) -> FlushResult:
        """
        Persist everything gathered during a run.

        Args:
            result: Drafts collected across all communities
            aggregator: Run-wide day bucket counters
            timeframe: The run's timeframe, used to tag aggregate rows

        Returns:
            Counts of what was written

        Raises:
            PersistenceError: If any store operation fails
        """
        try:
            return await self._flush(result, aggregator, timeframe)
        except PersistenceError:
            raise
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Persistence failed: {e}", exc_info=True)
            raise PersistenceError(f"Failed to persist refresh results: {e}") from e

    async def _flush(self, result: CommunityResult, aggregator: Aggregator, timeframe: str) -> FlushResult:
        counts = FlushResult()

        posts: List[PostDraft] = dedupe_by_reddit_id(result.posts)
        post_ids: Dict[str, uuid.UUID] = {}
        if posts:
            await self.repository.upsert_posts([post.model_dump() for post in posts])
            post_ids = await self.repository.get_post_ids(post.reddit_id for post in posts)
        counts.posts_processed = len(post_ids)
        logger.info(f"Upserted {len(posts)} posts, resolved {len(post_ids)} ids")

        comment_rows = self._comment_rows(dedupe_by_reddit_id(result.comments), post_ids)
        comment_ids: Dict[str, uuid.UUID] = {}
        if comment_rows:
            await self.repository.upsert_comments(comment_rows)
            comment_ids = await self.repository.get_comment_ids(row["reddit_id"] for row in comment_rows)
        counts.comments_processed = len(comment_ids)
        logger.info(f"Upserted {len(comment_rows)} comments, resolved {len(comment_ids)} ids")

        sentiment_rows = self._sentiment_rows(result.post_sentiments, post_ids, "post")
        sentiment_rows += self._sentiment_rows(result.comment_sentiments, comment_ids, "comment")

        touched_posts: Set[uuid.UUID] = set(post_ids.values())
        touched_comments: Set[uuid.UUID] = set(comment_ids.values())
        await self.repository.delete_sentiments_for_posts(touched_posts)
        await self.repository.delete_sentiments_for_comments(touched_comments)
        counts.sentiments_inserted = await self.repository.insert_sentiments(sentiment_rows)
        logger.info(f"Replaced sentiments with {counts.sentiments_inserted} rows")

        aggregate_rows = aggregator.to_rows(timeframe)
        touched_communities = aggregator.community_ids()
        if touched_communities:
            await self.repository.delete_daily_aggregates(timeframe, touched_communities)
            counts.aggregates_upserted = await self.repository.upsert_daily_aggregates(aggregate_rows)
        logger.info(f"Replaced {timeframe} daily aggregates with {counts.aggregates_upserted} rows")

        return counts

    @staticmethod
    def _comment_rows(comments: List[CommentDraft], post_ids: Dict[str, uuid.UUID]) -> List[Dict[str, Any]]:
        rows = []
        for comment in comments:
            post_id = post_ids.get(comment.post_reddit_id)
            if post_id is None:
                logger.warning(
                    f"Dropping comment {comment.reddit_id}: parent post {comment.post_reddit_id} was not persisted"
                )
                continue
            row = comment.model_dump(exclude={"post_reddit_id"})
            row["post_id"] = post_id
            rows.append(row)
        return rows

    @staticmethod
    def _sentiment_rows(
        drafts: List[SentimentDraft], subject_ids: Dict[str, uuid.UUID], source_type: str
    ) -> List[Dict[str, Any]]:
        rows = []
        for draft in dedupe_by_reddit_id(drafts):
            subject_id = subject_ids.get(draft.reddit_id)
            if subject_id is None:
                logger.warning(f"Dropping {source_type} sentiment for {draft.reddit_id}: subject was not persisted")
                continue
            rows.append({
                "source_type": source_type,
                "post_id": subject_id if source_type == "post" else None,
                "comment_id": subject_id if source_type == "comment" else None,
                "compound": draft.compound,
                "label": draft.label,
                "scored_at": draft.scored_at,
            })
        return rows

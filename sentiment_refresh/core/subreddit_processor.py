"""
Per-subreddit fetch, filter and score step of a refresh run.
"""
import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sentiment_refresh.core.aggregator import Aggregator
from sentiment_refresh.core.content_filter import (
    comment_text,
    created_epoch,
    keep_comment,
    keep_post,
    post_text,
    sanitize_text,
)
from sentiment_refresh.core.errors import FetchError
from sentiment_refresh.core.reddit_client import RateLimitedClient
from sentiment_refresh.core.sentiment_labeler import Scorer, label_from_score
from sentiment_refresh.models.dtos import (
    CommentDraft,
    CommunityDTO,
    CommunityResult,
    PostDraft,
    SentimentDraft,
)

logger = logging.getLogger(__name__)

REDDIT_WEB_BASE = "https://reddit.com"


def _listing_children(listing: Any) -> List[Any]:
    if not isinstance(listing, dict):
        return []
    data = listing.get("data")
    children = data.get("children") if isinstance(data, dict) else None
    return children if isinstance(children, list) else []


def _comment_children(payload: Any) -> List[Any]:
    # The comments endpoint answers [post listing, comment listing].
    if not isinstance(payload, list) or len(payload) < 2:
        return []
    return _listing_children(payload[1])


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def _to_datetime(epoch: float) -> datetime:
    return datetime.fromtimestamp(epoch, tz=timezone.utc)


class SubredditProcessor:
    """
    Fetches the newest posts of one subreddit plus their top-level comments,
    keeps the qualifying items, scores them and feeds the shared aggregator.

    Fetch failures never escape: they are turned into warning strings on the
    returned ``CommunityResult``.
    """

    def __init__(
        self,
        client: RateLimitedClient,
        scorer: Scorer,
        max_posts: int = 20,
        max_comments: int = 10,
        request_delay: float = 0.9,
        prometheus_exporter=None,
    ):
        self.client = client
        self.scorer = scorer
        self.max_posts = max_posts
        self.max_comments = max_comments
        self.request_delay = request_delay
        self.prometheus_exporter = prometheus_exporter

    async def process(
        self,
        community: CommunityDTO,
        since_epoch: float,
        keyword: Optional[str],
        aggregator: Aggregator,
    ) -> CommunityResult:
        """
        Run one community's pass.

        Args:
            community: The subreddit to fetch
            since_epoch: Earliest qualifying ``created_utc``
            keyword: Normalized keyword or None
            aggregator: Run-wide counters, updated in place

        Returns:
            Drafts and warnings for this community
        """
        result = CommunityResult()

        try:
            listing = await self.client.get_json(
                f"/r/{community.name}/new",
                params={"limit": self.max_posts, "raw_json": 1},
            )
        except FetchError as e:
            warning = f"[{community.name}] Failed to fetch posts: {e}"
            logger.warning(warning)
            result.warnings.append(warning)
            return result

        children = _listing_children(listing)
        logger.info(f"[{community.name}] Fetched {len(children)} listing items")

        for child in children:
            if not keep_post(child, since_epoch, keyword):
                continue
            data = child["data"]
            reddit_id = data.get("id")
            if not isinstance(reddit_id, str) or not reddit_id:
                logger.debug(f"[{community.name}] Skipping listing item without an id")
                continue

            self._add_post(result, community, data, aggregator)
            await self._add_comments(result, community, reddit_id, since_epoch, keyword, aggregator)
            await asyncio.sleep(self.request_delay)

        logger.info(
            f"[{community.name}] Kept {len(result.posts)} posts and {len(result.comments)} comments "
            f"({len(result.warnings)} warnings)"
        )
        if self.prometheus_exporter:
            self.prometheus_exporter.record_items_processed(community.name, "post", len(result.posts))
            self.prometheus_exporter.record_items_processed(community.name, "comment", len(result.comments))
        return result

    def _score(self, text: str):
        compound = float(self.scorer(text))
        return compound, label_from_score(compound)

    def _add_post(
        self,
        result: CommunityResult,
        community: CommunityDTO,
        data: Dict[str, Any],
        aggregator: Aggregator,
    ) -> None:
        now = datetime.now(timezone.utc)
        posted_at = _to_datetime(created_epoch(data))
        permalink = data.get("permalink")

        result.posts.append(PostDraft(
            reddit_id=data["id"],
            subreddit_id=community.id,
            title=sanitize_text(data.get("title")),
            author=sanitize_text(data.get("author")) or None,
            posted_at=posted_at,
            score=_optional_int(data.get("score")),
            comment_count=_optional_int(data.get("num_comments")),
            permalink=f"{REDDIT_WEB_BASE}{permalink}" if isinstance(permalink, str) else None,
            raw_json=data,
            updated_at=now,
        ))

        text = post_text(data)
        if not text:
            return
        compound, label = self._score(text)
        result.post_sentiments.append(SentimentDraft(
            reddit_id=data["id"],
            source_type="post",
            compound=compound,
            label=label,
            scored_at=now,
            posted_at=posted_at,
            subreddit_id=community.id,
        ))
        aggregator.record(community.id, posted_at, label)

    async def _add_comments(
        self,
        result: CommunityResult,
        community: CommunityDTO,
        post_reddit_id: str,
        since_epoch: float,
        keyword: Optional[str],
        aggregator: Aggregator,
    ) -> None:
        try:
            payload = await self.client.get_json(
                f"/comments/{post_reddit_id}",
                params={"depth": 1, "limit": self.max_comments, "raw_json": 1},
            )
        except FetchError as e:
            warning = f"[{community.name}] Failed to fetch comments for {post_reddit_id}: {e}"
            logger.warning(warning)
            result.warnings.append(warning)
            return

        for child in _comment_children(payload):
            if not keep_comment(child, since_epoch, keyword):
                continue
            data = child["data"]
            reddit_id = data.get("id")
            if not isinstance(reddit_id, str) or not reddit_id:
                continue

            posted_at = _to_datetime(created_epoch(data))
            body = comment_text(data)
            result.comments.append(CommentDraft(
                reddit_id=reddit_id,
                post_reddit_id=post_reddit_id,
                author=sanitize_text(data.get("author")) or None,
                posted_at=posted_at,
                body=body,
                raw_json=data,
            ))

            compound, label = self._score(body)
            result.comment_sentiments.append(SentimentDraft(
                reddit_id=reddit_id,
                source_type="comment",
                compound=compound,
                label=label,
                scored_at=datetime.now(timezone.utc),
                posted_at=posted_at,
                subreddit_id=community.id,
            ))
            aggregator.record(community.id, posted_at, label)

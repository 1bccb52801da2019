"""
Pydantic models for draft records, run results and API payloads.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

SourceType = Literal["post", "comment"]


class PostDraft(BaseModel):
    """In-memory post built while fetching, keyed by its upstream id until flushed."""
    reddit_id: str
    subreddit_id: uuid.UUID
    title: str
    author: Optional[str] = None
    posted_at: datetime
    score: Optional[int] = None
    comment_count: Optional[int] = None
    permalink: Optional[str] = None
    raw_json: Dict[str, Any] = Field(default_factory=dict)
    updated_at: datetime


class CommentDraft(BaseModel):
    """In-memory comment; ``post_reddit_id`` is re-keyed to the post's internal id at flush."""
    reddit_id: str
    post_reddit_id: str
    author: Optional[str] = None
    posted_at: datetime
    body: str
    raw_json: Dict[str, Any] = Field(default_factory=dict)


class SentimentDraft(BaseModel):
    """Score for a post or comment, referencing the subject by its upstream id."""
    reddit_id: str
    source_type: SourceType
    compound: float
    label: str
    scored_at: datetime
    posted_at: datetime
    subreddit_id: uuid.UUID


class CommunityResult(BaseModel):
    """Drafts and warnings accumulated by one or more subreddit passes."""
    posts: List[PostDraft] = Field(default_factory=list)
    post_sentiments: List[SentimentDraft] = Field(default_factory=list)
    comments: List[CommentDraft] = Field(default_factory=list)
    comment_sentiments: List[SentimentDraft] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def extend(self, other: "CommunityResult") -> None:
        self.posts.extend(other.posts)
        self.post_sentiments.extend(other.post_sentiments)
        self.comments.extend(other.comments)
        self.comment_sentiments.extend(other.comment_sentiments)
        self.warnings.extend(other.warnings)


class FlushResult(BaseModel):
    """Counts written by one persistence flush."""
    posts_processed: int = 0
    comments_processed: int = 0
    sentiments_inserted: int = 0
    aggregates_upserted: int = 0


class RefreshRequest(BaseModel):
    """Trigger payload. ``timeframe`` defaults to 7d when omitted."""
    timeframe: Optional[str] = Field(None, description="One of '24h', '7d', '30d'.")
    keyword: Optional[str] = Field(None, description="Optional case-insensitive keyword filter.")


class RefreshCounts(BaseModel):
    posts: int = 0
    comments: int = 0
    sentiments: int = 0
    aggregates: int = 0


class RefreshOutcome(BaseModel):
    """Synchronous result of a refresh trigger."""
    run_id: Optional[uuid.UUID] = None
    status: str
    timeframe: str
    keyword: Optional[str] = None
    counts: RefreshCounts = Field(default_factory=RefreshCounts)
    warnings: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    duration_ms: Optional[int] = None


class RefreshRunDTO(BaseModel):
    """
    DTO for refresh run records.

    Mirrors RefreshRunORM and is returned by the status interface.
    """
    id: uuid.UUID
    status: str
    timeframe: str
    keyword: Optional[str] = None
    trigger_source: str
    triggered_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    posts_processed: int = 0
    comments_processed: int = 0
    sentiments_processed: int = 0
    duration_ms: Optional[int] = None
    error: Optional[str] = None

    model_config = {"from_attributes": True}


class CommunityDTO(BaseModel):
    id: uuid.UUID
    name: str
    display_name: str
    reddit_path: str

    model_config = {"from_attributes": True}

"""
Models package for the Sentiment Refresh service.

This package contains SQLAlchemy ORM models and Pydantic DTOs.
"""

# Ensure all ORM models are registered with the Base metadata when this package is imported.
from .base import Base
from .community_orm import CommunityORM
from .refresh_run_orm import RefreshRunORM
from .post_orm import PostORM
from .comment_orm import CommentORM
from .sentiment_score_orm import SentimentScoreORM
from .daily_aggregate_orm import DailyAggregateORM

from .dtos import (
    CommentDraft,
    CommunityDTO,
    CommunityResult,
    FlushResult,
    PostDraft,
    RefreshCounts,
    RefreshOutcome,
    RefreshRequest,
    RefreshRunDTO,
    SentimentDraft,
)

__all__ = [
    # Base
    "Base",
    # ORMs
    "CommunityORM",
    "RefreshRunORM",
    "PostORM",
    "CommentORM",
    "SentimentScoreORM",
    "DailyAggregateORM",
    # DTOs
    "CommentDraft",
    "CommunityDTO",
    "CommunityResult",
    "FlushResult",
    "PostDraft",
    "RefreshCounts",
    "RefreshOutcome",
    "RefreshRequest",
    "RefreshRunDTO",
    "SentimentDraft",
]

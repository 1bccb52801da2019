"""
SQLAlchemy ORM model for the 'posts' table.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base, JSONPayload


class PostORM(Base):
    """
    A cached subreddit post, upserted by ``reddit_id`` whenever a run re-discovers it.

    Attributes:
        reddit_id (str): Upstream base36 id, the natural key.
        raw_json (dict): The listing item's ``data`` object as received.
    """
    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    subreddit_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("subreddits.id", ondelete="CASCADE"), nullable=False)
    reddit_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    posted_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    comment_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    permalink: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    raw_json: Mapped[Dict[str, Any]] = mapped_column(JSONPayload, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_posts_subreddit_posted_at", "subreddit_id", "posted_at"),
    )

    def __repr__(self) -> str:
        return f"<PostORM(id={self.id}, reddit_id='{self.reddit_id}')>"

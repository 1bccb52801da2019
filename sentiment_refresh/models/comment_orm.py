"""
SQLAlchemy ORM model for the 'comments' table.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import ForeignKey, Index, Text, Uuid
from sqlalchemy import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base, JSONPayload


class CommentORM(Base):
    """A cached top-level comment, upserted by ``reddit_id``. Always belongs to one post."""
    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    reddit_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    author: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    posted_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    raw_json: Mapped[Dict[str, Any]] = mapped_column(JSONPayload, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_comments_post_id_posted_at", "post_id", "posted_at"),
    )

    def __repr__(self) -> str:
        return f"<CommentORM(id={self.id}, reddit_id='{self.reddit_id}')>"

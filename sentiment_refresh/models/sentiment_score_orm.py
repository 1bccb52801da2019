"""
SQLAlchemy ORM model for the 'sentiments' table.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Float, ForeignKey, Index, Text, Uuid
from sqlalchemy import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base


class SentimentScoreORM(Base):
    """
    Sentiment of a single post or comment.

    Exactly one of ``post_id`` / ``comment_id`` is set, matching ``source_type``.
    Rows are replaced wholesale for every subject a run touches.

    Attributes:
        source_type (str): 'post' or 'comment'.
        compound (float): Raw compound score in [-1, 1].
        label (str): 'positive', 'neutral' or 'negative'.
    """
    __tablename__ = "sentiments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    source_type: Mapped[str] = mapped_column(Text, nullable=False)
    post_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True)
    comment_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True)
    compound: Mapped[float] = mapped_column(Float, nullable=False)
    label: Mapped[str] = mapped_column(Text, nullable=False)
    scored_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("source_type in ('post','comment')", name="ck_sentiments_source_type"),
        CheckConstraint("label in ('positive','neutral','negative')", name="ck_sentiments_label"),
        CheckConstraint(
            "(source_type = 'post' and post_id is not null and comment_id is null)"
            " or (source_type = 'comment' and comment_id is not null and post_id is null)",
            name="ck_sentiments_subject",
        ),
        Index("idx_sentiments_post", "post_id"),
        Index("idx_sentiments_comment", "comment_id"),
    )

    def __repr__(self) -> str:
        return f"<SentimentScoreORM(id={self.id}, source_type='{self.source_type}', label='{self.label}')>"

"""
SQLAlchemy ORM model for the 'subreddit_sentiment_daily' table.
"""
import uuid
from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base


class DailyAggregateORM(Base):
    """
    Per-subreddit, per-UTC-day label counts for one timeframe.

    Unique per ``(subreddit_id, timeframe, bucket_start)``. Every run replaces
    the rows of the ``(subreddit_id, timeframe)`` pairs it touched.
    """
    __tablename__ = "subreddit_sentiment_daily"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    subreddit_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("subreddits.id", ondelete="CASCADE"), nullable=False)
    timeframe: Mapped[str] = mapped_column(Text, nullable=False)
    bucket_start: Mapped[date] = mapped_column(Date, nullable=False)
    positive: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    neutral: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    negative: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    activity_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("subreddit_id", "timeframe", "bucket_start", name="uq_subreddit_sentiment_daily_bucket"),
        CheckConstraint("timeframe in ('24h','7d','30d')", name="ck_subreddit_sentiment_daily_timeframe"),
        Index("idx_subreddit_sentiment_daily", "subreddit_id", "timeframe", "bucket_start"),
    )

    def __repr__(self) -> str:
        return (
            f"<DailyAggregateORM(subreddit_id={self.subreddit_id}, timeframe='{self.timeframe}', "
            f"bucket_start='{self.bucket_start}', activity_count={self.activity_count})>"
        )

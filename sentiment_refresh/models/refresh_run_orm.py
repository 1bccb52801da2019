"""
SQLAlchemy ORM model for the 'refresh_jobs' table.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Index, Integer, Text, Uuid
from sqlalchemy import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base


class RefreshRunORM(Base):
    """
    One execution of the refresh pipeline.

    Created in ``queued`` and mutated only through ``JobLifecycle`` until it
    reaches one of the terminal statuses ``completed``,
    ``completed_with_warnings`` or ``failed``.
    """
    __tablename__ = "refresh_jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    triggered_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    trigger_source: Mapped[str] = mapped_column(Text, nullable=False, server_default="manual")
    timeframe: Mapped[str] = mapped_column(Text, nullable=False)
    keyword: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, server_default="queued")
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    finished_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    posts_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    comments_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    sentiments_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint("timeframe in ('24h','7d','30d')", name="ck_refresh_jobs_timeframe"),
        Index("idx_refresh_jobs_triggered_at", "triggered_at"),
    )

    def __repr__(self) -> str:
        return f"<RefreshRunORM(id={self.id}, timeframe='{self.timeframe}', status='{self.status}')>"

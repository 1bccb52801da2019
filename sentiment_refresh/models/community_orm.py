"""
SQLAlchemy ORM model for the 'subreddits' table.
"""
import uuid
from datetime import datetime

from sqlalchemy import Text, Uuid
from sqlalchemy import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base


class CommunityORM(Base):
    """
    A configured subreddit. Read-only input to the refresh pipeline.

    Attributes:
        id (uuid): Primary key.
        name (str): Canonical lower-case subreddit name used in API paths.
        display_name (str): Human-readable name.
        reddit_path (str): Path prefix on reddit, e.g. ``/r/openai``.
    """
    __tablename__ = "subreddits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True, comment="Canonical subreddit name.")
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    reddit_path: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self) -> str:
        return f"<CommunityORM(id={self.id}, name='{self.name}')>"

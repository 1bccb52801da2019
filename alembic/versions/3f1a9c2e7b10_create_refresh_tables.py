"""create subreddit, refresh job, content, sentiment and daily aggregate tables

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2024-09-23 20:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "3f1a9c2e7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_PAYLOAD = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        "subreddits",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False, unique=True, comment="Canonical subreddit name."),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("reddit_path", sa.Text(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "refresh_jobs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("triggered_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("trigger_source", sa.Text(), nullable=False, server_default="manual"),
        sa.Column("timeframe", sa.Text(), nullable=False),
        sa.Column("keyword", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default="queued"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("started_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("finished_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("posts_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comments_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sentiments_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.CheckConstraint("timeframe in ('24h','7d','30d')", name="ck_refresh_jobs_timeframe"),
    )
    op.create_index("idx_refresh_jobs_triggered_at", "refresh_jobs", ["triggered_at"])

    op.create_table(
        "posts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("subreddit_id", sa.Uuid(), sa.ForeignKey("subreddits.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reddit_id", sa.Text(), nullable=False, unique=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("author", sa.Text(), nullable=True),
        sa.Column("posted_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("comment_count", sa.Integer(), nullable=True),
        sa.Column("permalink", sa.Text(), nullable=True),
        sa.Column("raw_json", JSON_PAYLOAD, nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_posts_subreddit_posted_at", "posts", ["subreddit_id", "posted_at"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("post_id", sa.Uuid(), sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reddit_id", sa.Text(), nullable=False, unique=True),
        sa.Column("author", sa.Text(), nullable=True),
        sa.Column("posted_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("raw_json", JSON_PAYLOAD, nullable=False),
        _created_at(),
    )
    op.create_index("idx_comments_post_id_posted_at", "comments", ["post_id", "posted_at"])

    op.create_table(
        "sentiments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("source_type", sa.Text(), nullable=False),
        sa.Column("post_id", sa.Uuid(), sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=True),
        sa.Column("comment_id", sa.Uuid(), sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True),
        sa.Column("compound", sa.Float(), nullable=False),
        sa.Column("label", sa.Text(), nullable=False),
        sa.Column("scored_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("source_type in ('post','comment')", name="ck_sentiments_source_type"),
        sa.CheckConstraint("label in ('positive','neutral','negative')", name="ck_sentiments_label"),
        sa.CheckConstraint(
            "(source_type = 'post' and post_id is not null and comment_id is null)"
            " or (source_type = 'comment' and comment_id is not null and post_id is null)",
            name="ck_sentiments_subject",
        ),
    )
    op.create_index("idx_sentiments_post", "sentiments", ["post_id"])
    op.create_index("idx_sentiments_comment", "sentiments", ["comment_id"])

    op.create_table(
        "subreddit_sentiment_daily",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("subreddit_id", sa.Uuid(), sa.ForeignKey("subreddits.id", ondelete="CASCADE"), nullable=False),
        sa.Column("timeframe", sa.Text(), nullable=False),
        sa.Column("bucket_start", sa.Date(), nullable=False),
        sa.Column("positive", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("neutral", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("negative", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("activity_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.UniqueConstraint(
            "subreddit_id", "timeframe", "bucket_start", name="uq_subreddit_sentiment_daily_bucket"
        ),
        sa.CheckConstraint("timeframe in ('24h','7d','30d')", name="ck_subreddit_sentiment_daily_timeframe"),
    )
    op.create_index(
        "idx_subreddit_sentiment_daily", "subreddit_sentiment_daily", ["subreddit_id", "timeframe", "bucket_start"]
    )


def downgrade() -> None:
    op.drop_index("idx_subreddit_sentiment_daily", table_name="subreddit_sentiment_daily")
    op.drop_table("subreddit_sentiment_daily")
    op.drop_index("idx_sentiments_comment", table_name="sentiments")
    op.drop_index("idx_sentiments_post", table_name="sentiments")
    op.drop_table("sentiments")
    op.drop_index("idx_comments_post_id_posted_at", table_name="comments")
    op.drop_table("comments")
    op.drop_index("idx_posts_subreddit_posted_at", table_name="posts")
    op.drop_table("posts")
    op.drop_index("idx_refresh_jobs_triggered_at", table_name="refresh_jobs")
    op.drop_table("refresh_jobs")
    op.drop_table("subreddits")

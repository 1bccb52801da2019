import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from sentiment_refresh.core.aggregator import Aggregator, day_bucket
from sentiment_refresh.core.errors import FetchError
from sentiment_refresh.core.reddit_client import RateLimitedClient
from sentiment_refresh.core.subreddit_processor import SubredditProcessor
from sentiment_refresh.tests.stubs.reddit_payloads import (
    comment_child,
    comments_payload,
    keyword_scorer,
    listing,
    post_child,
)

NOW = int(time.time())
SINCE = NOW - 24 * 3600


def _routing_client(posts, comments_by_post, failing_comment_posts=()):
    """A RateLimitedClient stand-in that answers by path."""

    async def get_json(url, params=None):
        if url.startswith("/r/"):
            return listing(posts)
        post_id = url.rsplit("/", 1)[-1]
        if post_id in failing_comment_posts:
            raise FetchError(f"Reddit request failed (500): {url} :: boom", status_code=500)
        post = next(child for child in posts if child["data"]["id"] == post_id)
        return comments_payload(post, comments_by_post.get(post_id, []))

    client = MagicMock(spec=RateLimitedClient)
    client.get_json = AsyncMock(side_effect=get_json)
    return client


@pytest.fixture
def no_sleep(mocker):
    return mocker.patch("sentiment_refresh.core.subreddit_processor.asyncio.sleep", new_callable=AsyncMock)


@pytest.mark.asyncio
async def test_builds_drafts_sentiments_and_aggregates(community, no_sleep):
    posts = [post_child("p1", NOW - 60, title="I love this release", permalink="/r/openai/comments/p1/x/")]
    comments = {"p1": [comment_child("c1", NOW - 30, body="awful update"), comment_child("c2", NOW - 20, body="ok")]}
    aggregator = Aggregator()
    processor = SubredditProcessor(_routing_client(posts, comments), keyword_scorer, request_delay=0.9)

    result = await processor.process(community, SINCE, None, aggregator)

    assert [post.reddit_id for post in result.posts] == ["p1"]
    post = result.posts[0]
    assert post.subreddit_id == community.id
    assert post.permalink == "https://reddit.com/r/openai/comments/p1/x/"
    assert post.score == 10 and post.comment_count == 2
    assert post.raw_json["id"] == "p1"

    assert [comment.post_reddit_id for comment in result.comments] == ["p1", "p1"]
    assert [s.label for s in result.post_sentiments] == ["positive"]
    assert [s.label for s in result.comment_sentiments] == ["negative", "neutral"]
    assert result.warnings == []

    counts = aggregator.get(community.id, day_bucket(post.posted_at))
    assert counts.activity_count >= 1
    total = sum(c.activity_count for _, c in aggregator.items())
    assert total == 3

    no_sleep.assert_awaited_once_with(0.9)


@pytest.mark.asyncio
async def test_listing_failure_is_a_warning_and_empty_result(community, no_sleep):
    client = MagicMock(spec=RateLimitedClient)
    client.get_json = AsyncMock(side_effect=FetchError("Reddit request failed (503): url :: down", status_code=503))
    aggregator = Aggregator()

    result = await SubredditProcessor(client, keyword_scorer).process(community, SINCE, None, aggregator)

    assert result.posts == []
    assert result.warnings == ["[openai] Failed to fetch posts: Reddit request failed (503): url :: down"]
    assert len(aggregator) == 0
    no_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_comment_failure_on_one_post_keeps_the_others(community, no_sleep):
    posts = [post_child(pid, NOW - 100, title=f"post {pid}") for pid in ("p1", "p2", "p3")]
    comments = {pid: [comment_child(f"c-{pid}", NOW - 50, body="great stuff")] for pid in ("p1", "p2", "p3")}
    client = _routing_client(posts, comments, failing_comment_posts={"p2"})

    result = await SubredditProcessor(client, keyword_scorer).process(community, SINCE, None, Aggregator())

    assert len(result.posts) == 3
    assert sorted(c.reddit_id for c in result.comments) == ["c-p1", "c-p3"]
    assert len(result.comment_sentiments) == 2
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("[openai] Failed to fetch comments for p2: ")
    # The courtesy delay follows every post's comment pass, including the failed one
    assert no_sleep.await_count == 3


@pytest.mark.asyncio
async def test_deleted_comments_never_produce_sentiments(community, no_sleep):
    posts = [post_child("p1", NOW - 100, title="neutral title")]
    comments = {"p1": [
        comment_child("c1", NOW - 50, body="[deleted]"),
        comment_child("c2", NOW - 50, body="[removed]"),
        comment_child("c3", NOW - 50, body="real words"),
    ]}
    result = await SubredditProcessor(_routing_client(posts, comments), keyword_scorer).process(
        community, SINCE, None, Aggregator()
    )

    assert [s.reddit_id for s in result.comment_sentiments] == ["c3"]


@pytest.mark.asyncio
async def test_keyword_and_window_filters_apply(community, no_sleep):
    posts = [
        post_child("p1", NOW - 100, title="New CODEX feature"),
        post_child("p2", NOW - 100, title="unrelated topic"),
        post_child("p3", SINCE - 1, title="old codex news"),
    ]
    comments = {"p1": [comment_child("c1", NOW - 10, body="codex is great"), comment_child("c2", NOW - 10, body="meh")]}
    client = _routing_client(posts, comments)

    result = await SubredditProcessor(client, keyword_scorer).process(community, SINCE, "codex", Aggregator())

    assert [p.reddit_id for p in result.posts] == ["p1"]
    assert [c.reddit_id for c in result.comments] == ["c1"]
    # Comments are only fetched for kept posts
    fetched = [call.args[0] for call in client.get_json.await_args_list]
    assert fetched == ["/r/openai/new", "/comments/p1"]


@pytest.mark.asyncio
async def test_request_parameters(community, no_sleep):
    posts = [post_child("p1", NOW - 100)]
    client = _routing_client(posts, {})

    await SubredditProcessor(client, keyword_scorer, max_posts=20, max_comments=10).process(
        community, SINCE, None, Aggregator()
    )

    listing_call, comments_call = client.get_json.await_args_list
    assert listing_call.kwargs["params"] == {"limit": 20, "raw_json": 1}
    assert comments_call.kwargs["params"] == {"depth": 1, "limit": 10, "raw_json": 1}


@pytest.mark.asyncio
async def test_deleted_author_is_stored_as_none(community, no_sleep):
    posts = [post_child("p1", NOW - 100, author="[deleted]")]
    result = await SubredditProcessor(_routing_client(posts, {}), keyword_scorer).process(
        community, SINCE, None, Aggregator()
    )
    assert result.posts[0].author is None


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_value", [float("nan"), float("inf"), float("-inf"), "12", None])
async def test_non_finite_or_non_numeric_counts_are_dropped(community, no_sleep, bad_value):
    posts = [post_child("p1", NOW - 60, title="I love this", score=bad_value, num_comments=bad_value)]
    processor = SubredditProcessor(_routing_client(posts, {}), keyword_scorer)

    result = await processor.process(community, SINCE, None, Aggregator())

    assert [post.reddit_id for post in result.posts] == ["p1"]
    assert result.posts[0].score is None
    assert result.posts[0].comment_count is None
    assert result.warnings == []

import uuid
from datetime import date, datetime, timezone

from sentiment_refresh.core.aggregator import Aggregator, day_bucket
from sentiment_refresh.core.sentiment_labeler import NEGATIVE, NEUTRAL, POSITIVE


def test_items_either_side_of_midnight_land_in_different_buckets():
    community_id = uuid.uuid4()
    aggregator = Aggregator()
    aggregator.record(community_id, datetime(2024, 1, 1, 23, 59, tzinfo=timezone.utc), POSITIVE)
    aggregator.record(community_id, datetime(2024, 1, 2, 0, 1, tzinfo=timezone.utc), NEGATIVE)

    assert len(aggregator) == 2
    first = aggregator.get(community_id, date(2024, 1, 1))
    second = aggregator.get(community_id, date(2024, 1, 2))
    assert (first.positive, first.negative, first.activity_count) == (1, 0, 1)
    assert (second.positive, second.negative, second.activity_count) == (0, 1, 1)


def test_activity_count_is_sum_of_labels():
    community_id = uuid.uuid4()
    aggregator = Aggregator()
    posted_at = datetime(2024, 3, 5, 12, tzinfo=timezone.utc)
    for label in (POSITIVE, POSITIVE, NEUTRAL, NEGATIVE):
        aggregator.record(community_id, posted_at, label)

    counts = aggregator.get(community_id, date(2024, 3, 5))
    assert counts.activity_count == counts.positive + counts.neutral + counts.negative == 4


def test_communities_are_counted_separately_and_rows_are_tagged():
    first, second = uuid.uuid4(), uuid.uuid4()
    aggregator = Aggregator()
    posted_at = datetime(2024, 3, 5, 12, tzinfo=timezone.utc)
    aggregator.record(first, posted_at, POSITIVE)
    aggregator.record(second, posted_at, NEUTRAL)

    assert aggregator.community_ids() == {first, second}
    rows = aggregator.to_rows("24h")
    assert len(rows) == 2
    assert all(row["timeframe"] == "24h" and row["bucket_start"] == date(2024, 3, 5) for row in rows)
    by_community = {row["subreddit_id"]: row for row in rows}
    assert by_community[first]["positive"] == 1
    assert by_community[second]["neutral"] == 1


def test_day_bucket_uses_utc():
    assert day_bucket(datetime(2024, 1, 1, 23, 30)) == date(2024, 1, 1)
    local = datetime.fromisoformat("2024-01-02T01:30:00+02:00")
    assert day_bucket(local) == date(2024, 1, 1)


def test_unknown_bucket_reads_as_zero():
    counts = Aggregator().get(uuid.uuid4(), date(2024, 1, 1))
    assert counts.activity_count == 0

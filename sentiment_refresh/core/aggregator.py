"""Day-bucketed sentiment counters shared by every community within one run."""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, Iterator, List, Set, Tuple, Any

from sentiment_refresh.core.sentiment_labeler import NEGATIVE, POSITIVE

logger = logging.getLogger(__name__)

BucketKey = Tuple[uuid.UUID, date]


@dataclass
class BucketCounts:
    """Mutable per-bucket label counts."""

    positive: int = 0
    neutral: int = 0
    negative: int = 0
    activity_count: int = 0

    def add(self, label: str) -> None:
        if label == POSITIVE:
            self.positive += 1
        elif label == NEGATIVE:
            self.negative += 1
        else:
            self.neutral += 1
        self.activity_count += 1


def day_bucket(posted_at: datetime) -> date:
    """UTC calendar date of a timestamp. Naive datetimes are taken to be UTC."""
    if posted_at.tzinfo is None:
        posted_at = posted_at.replace(tzinfo=timezone.utc)
    return posted_at.astimezone(timezone.utc).date()


class Aggregator:
    """
    In-memory counters keyed by ``(community_id, day bucket)``.

    One instance is created at the start of a run, handed to each community's
    processing step in turn and converted into daily aggregate rows at flush.
    """

    def __init__(self):
        self._buckets: Dict[BucketKey, BucketCounts] = {}

    def record(self, community_id: uuid.UUID, posted_at: datetime, label: str) -> None:
        """Count one scored item under its community and UTC day."""
        key = (community_id, day_bucket(posted_at))
        counts = self._buckets.get(key)
        if counts is None:
            counts = BucketCounts()
            self._buckets[key] = counts
        counts.add(label)

    def get(self, community_id: uuid.UUID, bucket_start: date) -> BucketCounts:
        return self._buckets.get((community_id, bucket_start), BucketCounts())

    def items(self) -> Iterator[Tuple[BucketKey, BucketCounts]]:
        return iter(self._buckets.items())

    def community_ids(self) -> Set[uuid.UUID]:
        return {community_id for community_id, _ in self._buckets}

    def to_rows(self, timeframe: str) -> List[Dict[str, Any]]:
        """Convert the counters into daily aggregate rows tagged with ``timeframe``."""
        rows = []
        for (community_id, bucket_start), counts in sorted(
            self._buckets.items(), key=lambda item: (str(item[0][0]), item[0][1])
        ):
            rows.append({
                "subreddit_id": community_id,
                "timeframe": timeframe,
                "bucket_start": bucket_start,
                "positive": counts.positive,
                "neutral": counts.neutral,
                "negative": counts.negative,
                "activity_count": counts.activity_count,
            })
        return rows

    def __len__(self) -> int:
        return len(self._buckets)

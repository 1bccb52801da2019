"""
Content filtering for listing items returned by the upstream API.

Everything here is a pure function of the listing child, the run's cutoff
epoch and the (normalized) keyword.
"""
import math
from typing import Any, Dict, Optional

POST_KIND = "t3"
COMMENT_KIND = "t1"

DELETION_SENTINELS = frozenset({"[deleted]", "[removed]"})


def sanitize_text(value: Any) -> str:
    """Return ``value`` as text, treating non-strings and deletion sentinels as empty."""
    if not isinstance(value, str):
        return ""
    if value in DELETION_SENTINELS:
        return ""
    return value


def normalize_keyword(keyword: Optional[str]) -> Optional[str]:
    """Strip and lower-case a keyword; blank keywords mean no filtering."""
    if not keyword:
        return None
    trimmed = keyword.strip().lower()
    return trimmed or None


def matches_keyword(text: str, keyword: Optional[str]) -> bool:
    """Case-insensitive substring containment. No keyword matches everything."""
    if not keyword:
        return True
    return keyword.lower() in text.lower()


def created_epoch(data: Dict[str, Any]) -> Optional[float]:
    """Parse ``created_utc`` into a finite float, or None if it is missing or malformed."""
    value = data.get("created_utc")
    if isinstance(value, bool):
        return None
    try:
        epoch = float(value)
    except (TypeError, ValueError):
        return None
    return epoch if math.isfinite(epoch) else None


def post_text(data: Dict[str, Any]) -> str:
    """Combined title and selftext used for keyword matching and scoring."""
    title = sanitize_text(data.get("title"))
    selftext = sanitize_text(data.get("selftext"))
    return f"{title}\n{selftext}".strip()


def comment_text(data: Dict[str, Any]) -> str:
    return sanitize_text(data.get("body"))


def _passes(data: Dict[str, Any], text: str, since_epoch: float, keyword: Optional[str]) -> bool:
    if data.get("stickied") or data.get("removed_by_category"):
        return False

    created = created_epoch(data)
    if created is None or created < since_epoch:
        return False

    if not text:
        return False

    return matches_keyword(text, keyword)


def keep_post(child: Any, since_epoch: float, keyword: Optional[str] = None) -> bool:
    """Decide whether a listing child is an in-window, live post matching the keyword."""
    if not isinstance(child, dict) or child.get("kind") != POST_KIND:
        return False
    data = child.get("data")
    if not isinstance(data, dict):
        return False
    return _passes(data, post_text(data), since_epoch, keyword)


def keep_comment(child: Any, since_epoch: float, keyword: Optional[str] = None) -> bool:
    """Decide whether a comments-listing child is an in-window, non-deleted comment matching the keyword."""
    if not isinstance(child, dict) or child.get("kind") != COMMENT_KIND:
        return False
    data = child.get("data")
    if not isinstance(data, dict):
        return False
    return _passes(data, comment_text(data), since_epoch, keyword)

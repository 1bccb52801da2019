"""Supported refresh timeframes and cutoff computation."""

import time
from typing import Dict, Optional

from sentiment_refresh.core.errors import ConfigError

TIMEFRAMES: Dict[str, int] = {
    "24h": 24,
    "7d": 7 * 24,
    "30d": 30 * 24,
}

DEFAULT_TIMEFRAME = "7d"


def validate_timeframe(timeframe: Optional[str]) -> str:
    """
    Return the timeframe key to use for a run, defaulting to 7d.

    Raises:
        ConfigError: If the timeframe is not one of the supported keys
    """
    if timeframe is None:
        return DEFAULT_TIMEFRAME
    if timeframe not in TIMEFRAMES:
        raise ConfigError(
            f"Unsupported timeframe '{timeframe}'. Allowed: {', '.join(TIMEFRAMES)}"
        )
    return timeframe


def cutoff_epoch(timeframe: str, now: Optional[float] = None) -> int:
    """Earliest unix timestamp (inclusive) an item may have to qualify for the run."""
    current = time.time() if now is None else now
    return int(current - TIMEFRAMES[timeframe] * 3600)

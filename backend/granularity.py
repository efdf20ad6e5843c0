import time
from dataclasses import dataclass
from typing import Dict, Optional

HOUR_MS = 3_600_000
DAY_MS = 24 * HOUR_MS

# Query window tokens accepted by the historical endpoint, in hours
TIME_RANGES: Dict[str, int] = {
    "1h": 1,
    "24h": 24,
    "7d": 168,
    "30d": 720,
}
DEFAULT_TIME_RANGE = "24h"


def now_ms() -> int:
    return int(time.time() * 1000)


def hours_for_range(token: Optional[str]) -> int:
    """Map a time range token to an hour count; unknown tokens mean 24h."""
    return TIME_RANGES.get(token or DEFAULT_TIME_RANGE, TIME_RANGES[DEFAULT_TIME_RANGE])


@dataclass
class Granularity:
    symbol: str  # e.g. "1m", "5m", "1h"
    name: str    # e.g. "1 minute", "5 minutes", "1 hour"
    ms_size: int  # bucket size in milliseconds

    def __repr__(self):
        return f"<Granularity {self.symbol} ({self.name})>"


one_min = Granularity('1m', '1 minute', 60_000)
five_min = Granularity('5m', '5 minutes', 300_000)
hour = Granularity('1h', '1 hour', HOUR_MS)
six_hour = Granularity('6h', '6 hours', 6 * HOUR_MS)
day = Granularity('1d', '1 day', DAY_MS)

GRANULARITIES: Dict[str, Granularity] = {
    g.symbol: g for g in [one_min, five_min, hour, six_hour, day]
}

AUTO_GRANULARITY = "auto"


def pick_granularity(visible_range_ms: int) -> str:
    """
    Determine the bucket size for a window so charts stay around 100-300 points.

    Args:
        visible_range_ms: The window length in milliseconds

    Returns:
        str: A granularity symbol ('1m', '5m', '1h', '6h')
    """
    if visible_range_ms > 10 * DAY_MS:
        return "6h"
    elif visible_range_ms > DAY_MS:
        return "1h"
    elif visible_range_ms > HOUR_MS:
        return "5m"
    else:
        return "1m"


def resolve_granularity(symbol: Optional[str], visible_range_ms: int) -> Optional[Granularity]:
    """Resolve a requested symbol ('auto' picks one from the window); None means raw samples."""
    if not symbol:
        return None
    if symbol == AUTO_GRANULARITY:
        symbol = pick_granularity(visible_range_ms)
    if symbol not in GRANULARITIES:
        raise ValueError(
            f"Invalid granularity. Valid options are: {AUTO_GRANULARITY}, {', '.join(GRANULARITIES.keys())}"
        )
    return GRANULARITIES[symbol]

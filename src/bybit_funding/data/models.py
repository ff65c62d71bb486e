"""Data models for funding rate observations and per-symbol series.

CRITICAL: All rates use Decimal. Never use float for rates.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

# Timestamp -> rate, keys are naive UTC truncated to whole seconds
SymbolSeries = dict[datetime, Decimal]


@dataclass(frozen=True)
class FundingObservation:
    """A single funding rate event as returned by the funding-history endpoint."""

    symbol: str
    timestamp_ms: int
    rate: Decimal

    @property
    def timestamp(self) -> datetime:
        """Funding time as naive UTC with sub-second precision dropped."""
        return to_series_key(self.timestamp_ms)


def to_series_key(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to a naive UTC datetime truncated to the second."""
    seconds = timestamp_ms // 1000
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)

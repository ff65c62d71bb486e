"""Funding rate data pipeline.

Provides the instrument catalog loader, the per-date funding fetcher, data
models, and the flat-file store that merges and atomically writes series.
"""

from bybit_funding.data.catalog import InstrumentCatalog
from bybit_funding.data.fetcher import FundingRateFetcher
from bybit_funding.data.models import FundingObservation, SymbolSeries
from bybit_funding.data.store import FundingRateStore

__all__ = [
    "FundingObservation",
    "FundingRateFetcher",
    "FundingRateStore",
    "InstrumentCatalog",
    "SymbolSeries",
]

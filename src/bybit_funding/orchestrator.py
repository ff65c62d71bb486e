"""Download orchestrator -- drives one funding rate download run.

Each run:
  1. CATALOG: Load perpetual instruments once (both categories)
  2. FETCH: For each processing date in order, fetch that day's funding events
  3. FOLD: Accumulate events into symbol -> series, keyed to the second
  4. SAVE: Merge each touched symbol with published data and write it once

Dates are processed strictly one after another; parallelism only exists
inside a single date's fetch. Any DownloaderError aborts the run. Files
already written stay valid because every write is an atomic replace.
"""

import asyncio
import time
from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone

import structlog

from bybit_funding.config import HISTORY_START, DownloaderSettings
from bybit_funding.data.catalog import InstrumentCatalog
from bybit_funding.data.fetcher import FundingRateFetcher
from bybit_funding.data.models import FundingObservation, SymbolSeries
from bybit_funding.data.store import FundingRateStore
from bybit_funding.exceptions import DownloaderError
from bybit_funding.exchange.types import Instrument
from bybit_funding.logging import get_logger

logger = get_logger(__name__)


def each_day(start: date, end: date) -> Iterator[date]:
    """Yield every date from ``start`` inclusive to ``end`` exclusive."""
    current = start
    while current < end:
        yield current
        current += timedelta(days=1)


def fold_observations(
    series_by_symbol: dict[str, SymbolSeries],
    observations: list[FundingObservation],
) -> None:
    """Insert observations into their symbol's series; later values overwrite."""
    for observation in observations:
        series = series_by_symbol.setdefault(observation.symbol, {})
        series[observation.timestamp] = observation.rate


class Orchestrator:
    """Runs the catalog -> fetch -> fold -> save pipeline.

    Args:
        catalog: Instrument catalog loader.
        fetcher: Per-date funding rate fetcher.
        store: Merge/atomic-write store for per-symbol files.
        deployment_date: Single date to process; full history when None.
        history_start: First date of the full-history range.
    """

    def __init__(
        self,
        catalog: InstrumentCatalog,
        fetcher: FundingRateFetcher,
        store: FundingRateStore,
        deployment_date: date | None = None,
        history_start: date = HISTORY_START,
    ) -> None:
        self._catalog = catalog
        self._fetcher = fetcher
        self._store = store
        self._deployment_date = deployment_date
        self._history_start = history_start

    @classmethod
    def from_settings(
        cls,
        settings: DownloaderSettings,
        catalog: InstrumentCatalog,
        fetcher: FundingRateFetcher,
        store: FundingRateStore,
    ) -> "Orchestrator":
        return cls(
            catalog=catalog,
            fetcher=fetcher,
            store=store,
            deployment_date=settings.deployment_date,
            history_start=settings.history_start,
        )

    def processing_dates(self, today: date | None = None) -> list[date]:
        """Dates to download: the deployment date, or history up to yesterday (UTC)."""
        if self._deployment_date is not None:
            return [self._deployment_date]
        if today is None:
            today = datetime.now(timezone.utc).date()
        return list(each_day(self._history_start, today))

    async def run(self) -> bool:
        """Execute one full download.

        Returns:
            True if every date was fetched and every symbol saved, False if a
            fatal error aborted the run.
        """
        start_time = time.monotonic()
        dates = self.processing_dates()
        logger.info(
            "funding_download_starting",
            dates=len(dates),
            first=dates[0].isoformat() if dates else None,
            last=dates[-1].isoformat() if dates else None,
            mode="deployment" if self._deployment_date else "history",
        )

        try:
            instruments = await self._catalog.load_instruments()
            series_by_symbol = await self._fetch_dates(dates, instruments)
            await self._save_all(series_by_symbol)
        except DownloaderError:
            logger.exception(
                "funding_download_failed",
                duration_seconds=round(time.monotonic() - start_time, 1),
            )
            return False

        logger.info(
            "funding_download_complete",
            dates=len(dates),
            symbols=len(series_by_symbol),
            duration_seconds=round(time.monotonic() - start_time, 1),
        )
        return True

    async def _fetch_dates(
        self, dates: list[date], instruments: list[Instrument]
    ) -> dict[str, SymbolSeries]:
        series_by_symbol: dict[str, SymbolSeries] = {}
        for i, day in enumerate(dates, 1):
            with structlog.contextvars.bound_contextvars(day=day.isoformat()):
                observations = await self._fetcher.fetch_for_date(day, instruments)
                fold_observations(series_by_symbol, observations)
                logger.info(
                    "funding_date_processed",
                    progress=f"{i}/{len(dates)}",
                    observations=len(observations),
                )
        return series_by_symbol

    async def _save_all(self, series_by_symbol: dict[str, SymbolSeries]) -> None:
        for symbol in sorted(series_by_symbol):
            await asyncio.to_thread(
                self._store.merge_and_save, symbol, series_by_symbol[symbol]
            )
        logger.info(
            "funding_series_saved",
            symbols=len(series_by_symbol),
            folder=str(self._store.destination_folder),
        )

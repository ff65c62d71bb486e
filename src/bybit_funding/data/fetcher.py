"""Per-date funding rate fetch pipeline.

For one UTC day, issues one rate-limited funding-history request per
launched perpetual instrument using a bounded pool of worker tasks.

Implementation notes:
- Always pass both startTime and endTime; without them Bybit returns the
  latest 200 records instead of the requested day.
- 200 rows per call covers a day even at 1h funding intervals, so there
  is no pagination inside a symbol/day window.
- Workers push parsed batches onto a queue that is drained once every worker
  has finished, so no list is shared between tasks.
"""

import asyncio
import os
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation

from bybit_funding.data.models import FundingObservation
from bybit_funding.exceptions import DecodeError
from bybit_funding.exchange.client import MarketDataClient
from bybit_funding.exchange.types import Instrument
from bybit_funding.logging import get_logger

logger = get_logger(__name__)


def day_bounds_ms(day: date) -> tuple[int, int]:
    """Return [day 00:00, day+1 00:00) in UTC epoch milliseconds."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = start + timedelta(days=1)
    return int(start.timestamp() * 1000), int(end.timestamp() * 1000)


def parse_funding_history(body: dict | str) -> list[FundingObservation]:
    """Decode a funding-history response body into observations.

    Raises:
        DecodeError: The body is not the expected {result: {list: [...]}} shape
            or a field fails to parse.
    """
    try:
        records = body["result"]["list"]
        return [
            FundingObservation(
                symbol=str(record["symbol"]),
                timestamp_ms=int(record["fundingRateTimestamp"]),
                rate=Decimal(str(record["fundingRate"])),
            )
            for record in records
        ]
    except (KeyError, TypeError, ValueError, InvalidOperation) as e:
        raise DecodeError(f"malformed funding-history response: {e!r}", body=body) from e


class FundingRateFetcher:
    """Fetches one day of funding rates for every eligible instrument.

    Usage:
        fetcher = FundingRateFetcher(client)
        observations = await fetcher.fetch_for_date(date(2024, 1, 1), instruments)
    """

    def __init__(self, client: MarketDataClient, max_workers: int | None = None) -> None:
        self._client = client
        self._max_workers = max_workers or os.cpu_count() or 1

    async def fetch_for_date(
        self, day: date, instruments: list[Instrument]
    ) -> list[FundingObservation]:
        """Fetch all funding events inside ``day`` for instruments launched by then.

        One failing instrument fails the whole date: remaining workers are
        cancelled and the error propagates.

        Raises:
            NetworkError: A request failed.
            DecodeError: A response could not be parsed.
        """
        start_ms, end_ms = day_bounds_ms(day)
        eligible = [i for i in instruments if i.launch_timestamp <= end_ms]

        pending: asyncio.Queue[Instrument] = asyncio.Queue()
        for instrument in eligible:
            pending.put_nowait(instrument)
        results: asyncio.Queue[list[FundingObservation]] = asyncio.Queue()

        worker_count = min(self._max_workers, len(eligible))
        workers = [
            asyncio.create_task(self._worker(pending, results, start_ms, end_ms))
            for _ in range(worker_count)
        ]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise

        observations: list[FundingObservation] = []
        while not results.empty():
            observations.extend(results.get_nowait())

        logger.debug(
            "funding_date_fetched",
            day=day.isoformat(),
            instruments=len(eligible),
            skipped_unlaunched=len(instruments) - len(eligible),
            observations=len(observations),
        )
        return observations

    async def _worker(
        self,
        pending: "asyncio.Queue[Instrument]",
        results: "asyncio.Queue[list[FundingObservation]]",
        start_ms: int,
        end_ms: int,
    ) -> None:
        while True:
            try:
                instrument = pending.get_nowait()
            except asyncio.QueueEmpty:
                return
            batch = await self._fetch_instrument(instrument, start_ms, end_ms)
            await results.put(batch)

    async def _fetch_instrument(
        self, instrument: Instrument, start_ms: int, end_ms: int
    ) -> list[FundingObservation]:
        body = await self._client.fetch_funding_history(
            instrument.symbol, instrument.category, start_ms, end_ms
        )
        try:
            return parse_funding_history(body)
        except DecodeError:
            logger.error(
                "funding_history_decode_failed",
                symbol=instrument.symbol,
                category=instrument.category.value,
                body=body,
            )
            raise

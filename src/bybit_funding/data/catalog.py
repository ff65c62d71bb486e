"""Instrument catalog loader.

Walks Bybit's cursor-paginated instruments-info listing for both derivative
categories and keeps only perpetual contracts. Dated futures never reach the
funding fetch.
"""

from decimal import Decimal, InvalidOperation

from bybit_funding.exceptions import DecodeError
from bybit_funding.exchange.client import MarketDataClient
from bybit_funding.exchange.types import Category, Instrument
from bybit_funding.logging import get_logger

logger = get_logger(__name__)

CATEGORIES = (Category.LINEAR, Category.INVERSE)


class InstrumentCatalog:
    """Loads the tradable perpetual instruments once per run.

    Usage:
        catalog = InstrumentCatalog(client)
        instruments = await catalog.load_instruments()
    """

    def __init__(self, client: MarketDataClient) -> None:
        self._client = client

    async def load_instruments(self) -> list[Instrument]:
        """Fetch every trading instrument and return the perpetual ones.

        Raises:
            NetworkError: A listing request failed.
            DecodeError: A page was malformed. No partial catalog is returned.
        """
        instruments: list[Instrument] = []
        for category in CATEGORIES:
            fetched = await self._load_category(category)
            logger.info(
                "instrument_category_loaded",
                category=category.value,
                count=len(fetched),
            )
            instruments.extend(fetched)

        perpetuals = [i for i in instruments if i.is_perpetual]
        logger.info(
            "instrument_catalog_loaded",
            total=len(instruments),
            perpetual=len(perpetuals),
        )
        return perpetuals

    async def _load_category(self, category: Category) -> list[Instrument]:
        """Follow nextPageCursor until it is empty or repeats the one just used."""
        instruments: list[Instrument] = []
        cursor: str | None = None

        while True:
            body = await self._client.fetch_instruments_page(category, cursor)
            try:
                page, next_cursor = parse_instruments_page(body, category)
            except DecodeError:
                logger.error(
                    "instrument_page_decode_failed",
                    category=category.value,
                    cursor=cursor,
                    body=body,
                )
                raise
            instruments.extend(page)

            if not next_cursor or next_cursor == cursor:
                break
            cursor = next_cursor

        return instruments


def parse_instruments_page(
    body: dict | str, requested: Category
) -> tuple[list[Instrument], str]:
    """Decode one instruments-info response into instruments and the next cursor.

    Args:
        body: Decoded response body (raw text when the server sent non-JSON).
        requested: Category the page was requested for, used when the
            response omits its own category.

    Returns:
        The page's instruments and the next-page cursor ("" when absent).
    """
    try:
        result = body["result"]
        records = result["list"]
        category = Category(result.get("category") or requested.value)

        instruments = [
            Instrument(
                symbol=str(record["symbol"]),
                contract_type=str(record["contractType"]),
                category=category,
                launch_timestamp=int(Decimal(str(record["launchTime"]))),
            )
            for record in records
        ]
        next_cursor = str(result.get("nextPageCursor") or "")
    except (KeyError, TypeError, ValueError, AttributeError, InvalidOperation) as e:
        raise DecodeError(f"malformed instruments-info response: {e!r}", body=body) from e

    return instruments, next_cursor

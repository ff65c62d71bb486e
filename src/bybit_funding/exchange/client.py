"""Abstract market data client interface.

Defines the contract the catalog and fetcher depend on, keeping the
ccxt/Bybit transport details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod

from bybit_funding.exchange.types import Category


class MarketDataClient(ABC):
    """Abstract base class for public market data REST clients."""

    @abstractmethod
    async def fetch_instruments_page(
        self, category: Category, cursor: str | None = None
    ) -> dict | str:
        """Fetch one page (up to 1000 records) of trading instruments.

        Returns the decoded response body as-is. A body that was not JSON
        comes back as the raw text so callers can report it.
        """
        ...

    @abstractmethod
    async def fetch_funding_history(
        self,
        symbol: str,
        category: Category,
        start_ms: int,
        end_ms: int,
        limit: int = 200,
    ) -> dict | str:
        """Fetch funding rate history for one symbol inside [start_ms, end_ms].

        Bybit max limit: 200 records per call. Pagination is NOT handled here.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release transport resources."""
        ...

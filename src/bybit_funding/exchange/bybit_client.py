"""Bybit public REST client via ccxt async.

Wraps ccxt.async_support.bybit's implicit v5 endpoints. ccxt's built-in
throttling is switched off: every request is gated by the injected
RateLimiter instead, so one budget covers the whole process.
"""

import ccxt.async_support as ccxt_async

from bybit_funding.config import ExchangeSettings
from bybit_funding.exceptions import DecodeError, NetworkError
from bybit_funding.exchange.client import MarketDataClient
from bybit_funding.exchange.types import Category
from bybit_funding.logging import get_logger
from bybit_funding.throttler import RateLimiter

logger = get_logger(__name__)

INSTRUMENTS_PAGE_LIMIT = 1000
FUNDING_HISTORY_LIMIT = 200


class BybitPublicClient(MarketDataClient):
    """Concrete Bybit v5 market data client using ccxt async."""

    def __init__(self, settings: ExchangeSettings, limiter: RateLimiter) -> None:
        self._settings = settings
        self._limiter = limiter

        config: dict = {
            "enableRateLimit": False,
            "options": {
                "defaultType": "swap",
            },
        }

        # Point both API families at the configured host
        endpoint = settings.api_endpoint.rstrip("/")
        if endpoint != "https://api.bybit.com":
            config["urls"] = {
                "api": {
                    "public": endpoint,
                    "private": endpoint,
                },
            }

        self._exchange = ccxt_async.bybit(config)

    @property
    def exchange(self) -> ccxt_async.bybit:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        await self._exchange.close()
        logger.debug("bybit_connection_closed")

    async def fetch_instruments_page(
        self, category: Category, cursor: str | None = None
    ) -> dict | str:
        params: dict = {
            "limit": INSTRUMENTS_PAGE_LIMIT,
            "status": "Trading",
            "category": category.value,
        }
        if cursor:
            params["cursor"] = cursor
        return await self._request(
            self._exchange.public_get_v5_market_instruments_info, params
        )

    async def fetch_funding_history(
        self,
        symbol: str,
        category: Category,
        start_ms: int,
        end_ms: int,
        limit: int = FUNDING_HISTORY_LIMIT,
    ) -> dict | str:
        params = {
            "limit": limit,
            "symbol": symbol,
            "startTime": start_ms,
            "endTime": end_ms,
            "category": category.value,
        }
        return await self._request(
            self._exchange.public_get_v5_market_funding_history, params
        )

    async def _request(self, endpoint_fn, params: dict) -> dict | str:
        """Issue one rate-limited request, translating ccxt errors.

        Single attempt only: failures propagate as NetworkError/DecodeError.
        """
        await self._limiter.acquire()
        try:
            return await endpoint_fn(params)
        except ccxt_async.BadResponse as e:
            raise DecodeError(f"unreadable response: {e}", body=str(e)) from e
        except ccxt_async.BaseError as e:
            logger.error("bybit_request_failed", params=params, error=str(e))
            raise NetworkError(str(e)) from e

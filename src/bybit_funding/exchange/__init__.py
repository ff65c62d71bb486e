"""Exchange client layer -- Bybit public API integration via ccxt."""

from bybit_funding.exchange.bybit_client import BybitPublicClient
from bybit_funding.exchange.client import MarketDataClient
from bybit_funding.exchange.types import Category, Instrument

__all__ = ["BybitPublicClient", "Category", "Instrument", "MarketDataClient"]

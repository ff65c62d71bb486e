"""Entry point for the Bybit funding rate downloader.

Wires all components together, runs a single download, and exits with
status 0 on success or 1 on failure.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. RateLimiter (shared request budget)
4. BybitPublicClient (ccxt transport, gated by the limiter)
5. InstrumentCatalog (perpetual instruments)
6. FundingRateFetcher (per-date parallel fetch)
7. FundingRateStore (merge + atomic write)
8. Orchestrator (date loop)
"""

import asyncio
import sys
from typing import Any

from bybit_funding.config import AppSettings
from bybit_funding.data.catalog import InstrumentCatalog
from bybit_funding.data.fetcher import FundingRateFetcher
from bybit_funding.data.store import FundingRateStore
from bybit_funding.exchange.bybit_client import BybitPublicClient
from bybit_funding.logging import get_logger, setup_logging
from bybit_funding.orchestrator import Orchestrator
from bybit_funding.throttler import RateLimiter


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all downloader components from settings.

    Creating the store also creates the destination folder.

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    downloader = settings.downloader

    # 3. Shared rate limiter
    limiter = RateLimiter(
        max_requests=downloader.rate_limit,
        period=downloader.rate_period_seconds,
    )

    # 4. Exchange client
    client = BybitPublicClient(settings.exchange, limiter)

    # 5-7. Pipeline stages
    catalog = InstrumentCatalog(client)
    fetcher = FundingRateFetcher(client, max_workers=downloader.max_workers)
    store = FundingRateStore(
        destination_root=downloader.destination_folder,
        existing_root=downloader.existing_data_folder,
        exchange=settings.exchange.name,
        scratch_folder=downloader.scratch_folder,
    )

    # 8. Orchestrator
    orchestrator = Orchestrator.from_settings(downloader, catalog, fetcher, store)

    return {
        "limiter": limiter,
        "client": client,
        "catalog": catalog,
        "fetcher": fetcher,
        "store": store,
        "orchestrator": orchestrator,
    }


async def run(settings: AppSettings | None = None) -> bool:
    """Run one funding rate download and report success."""
    # 1. Load settings
    if settings is None:
        settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level)
    logger = get_logger("bybit_funding.main")

    # 3-8. Build all components
    components = _build_components(settings)

    logger.info(
        "funding_downloader_starting",
        endpoint=settings.exchange.api_endpoint,
        destination=str(components["store"].destination_folder),
        existing=str(components["store"].existing_folder),
        deployment_date=(
            settings.downloader.deployment_date.isoformat()
            if settings.downloader.deployment_date
            else None
        ),
    )

    try:
        return await components["orchestrator"].run()
    finally:
        components["limiter"].close()
        await components["client"].close()
        logger.info("funding_downloader_stopped")


def main() -> None:
    """Synchronous entry point."""
    success = asyncio.run(run())
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()

"""Shared test fixtures for the funding rate downloader."""

from pathlib import Path

import pytest

from bybit_funding.config import AppSettings, DownloaderSettings, ExchangeSettings
from bybit_funding.exchange.types import Category, Instrument


@pytest.fixture
def mock_settings(tmp_path: Path) -> AppSettings:
    """Return AppSettings pointing every folder into tmp_path."""
    return AppSettings(
        log_level="DEBUG",
        exchange=ExchangeSettings(api_endpoint="https://api.bybit.com"),
        downloader=DownloaderSettings(
            destination_folder=tmp_path / "output",
            existing_data_folder=tmp_path / "data",
            rate_limit=100,
            rate_period_seconds=1.0,
            max_workers=4,
        ),
    )


@pytest.fixture
def btc_linear() -> Instrument:
    return Instrument(
        symbol="BTCUSDT",
        contract_type="LinearPerpetual",
        category=Category.LINEAR,
        launch_timestamp=1584230400000,
    )


@pytest.fixture
def btc_inverse() -> Instrument:
    return Instrument(
        symbol="BTCUSD",
        contract_type="InversePerpetual",
        category=Category.INVERSE,
        launch_timestamp=0,
    )

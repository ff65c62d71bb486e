"""Configuration system using pydantic-settings with environment variable loading."""

from datetime import date, datetime
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# First day Bybit published perpetual funding history
HISTORY_START = date(2019, 11, 14)


class ExchangeSettings(BaseSettings):
    """Bybit public REST API settings."""

    model_config = SettingsConfigDict(env_prefix="BYBIT_")

    api_endpoint: str = "https://api.bybit.com"
    name: str = "bybit"  # exchange folder name in the output tree


class DownloaderSettings(BaseSettings):
    """Funding rate download job configuration.

    Controls where output is written, where previously published data is read
    from, which dates are processed and how hard the API is hit.
    All fields configurable via DOWNLOADER_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="DOWNLOADER_")

    destination_folder: Path = Path("/temp-output-directory")
    existing_data_folder: Path = Path("./data")
    scratch_folder: Path | None = None  # defaults to the destination folder

    # Single date to process; full history when unset
    deployment_date: date | None = None
    history_start: date = HISTORY_START

    rate_limit: int = 10  # requests per period
    rate_period_seconds: float = 1.0
    max_workers: int | None = None  # defaults to os.cpu_count()

    @field_validator("deployment_date", mode="before")
    @classmethod
    def _parse_compact_date(cls, value: object) -> object:
        """Accept the compact YYYYMMDD form used by deployment tooling."""
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            if len(value) == 8 and value.isdigit():
                return datetime.strptime(value, "%Y%m%d").date()
        return value


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    exchange: ExchangeSettings = ExchangeSettings()
    downloader: DownloaderSettings = DownloaderSettings()

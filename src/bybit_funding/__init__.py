"""Bybit perpetual funding rate downloader."""

__version__ = "0.1.0"

"""Flat-file persistence for per-symbol funding rate series.

One CSV per symbol under <root>/cryptofuture/<exchange>/margin_interest, each
line ``YYYYMMDD HH:MM:SS,<rate>`` in ascending time order with no header.
Previously published files are read from a separate, read-only data folder and
only fill timestamps the fresh download did not cover.

CRITICAL: rates are parsed and written as Decimal in fixed notation so a
write/read/write cycle is byte-identical.
"""

import os
import tempfile
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path

from bybit_funding.data.models import SymbolSeries
from bybit_funding.exceptions import ParseError
from bybit_funding.logging import get_logger

logger = get_logger(__name__)

TIME_FORMAT = "%Y%m%d %H:%M:%S"


def margin_interest_folder(root: Path, exchange: str) -> Path:
    """Return the funding-rate folder for an exchange under a data root."""
    return Path(root) / "cryptofuture" / exchange.lower() / "margin_interest"


def symbol_file_name(symbol: str) -> str:
    """Map an exchange symbol to its output file name.

    USDC perpetuals are listed as e.g. BTCPERP but published as btcusdc.
    """
    name = symbol.lower()
    if name.endswith("perp"):
        name = name[: -len("perp")] + "usdc"
    return f"{name}.csv"


def format_line(timestamp: datetime, rate: Decimal) -> str:
    return f"{timestamp.strftime(TIME_FORMAT)},{format(rate, 'f')}"


def read_series(path: Path) -> SymbolSeries:
    """Read an existing series file.

    Blank lines and lines without a comma are skipped; anything else that
    fails to parse raises ParseError rather than being dropped.
    """
    series: SymbolSeries = {}
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            parts = line.split(",")
            if len(parts) < 2:
                continue
            try:
                timestamp = datetime.strptime(parts[0], TIME_FORMAT)
            except ValueError as e:
                raise ParseError(f"bad timestamp {parts[0]!r}", path, line_number) from e
            try:
                rate = Decimal(parts[1].strip())
            except InvalidOperation as e:
                raise ParseError(f"bad rate {parts[1]!r}", path, line_number) from e
            if not rate.is_finite():
                raise ParseError(f"bad rate {parts[1]!r}", path, line_number)
            series[timestamp] = rate
    return series


class FundingRateStore:
    """Merges fresh series with published data and writes them atomically.

    Usage:
        store = FundingRateStore(destination, existing, exchange="bybit")
        path = store.merge_and_save("BTCUSDT", {datetime(...): Decimal("0.0001")})
    """

    def __init__(
        self,
        destination_root: Path,
        existing_root: Path,
        exchange: str = "bybit",
        scratch_folder: Path | None = None,
    ) -> None:
        self._destination = margin_interest_folder(destination_root, exchange)
        self._existing = margin_interest_folder(existing_root, exchange)
        self._destination.mkdir(parents=True, exist_ok=True)

        # Same filesystem as the destination keeps os.replace atomic
        self._scratch = Path(scratch_folder) if scratch_folder else self._destination
        self._scratch.mkdir(parents=True, exist_ok=True)

    @property
    def destination_folder(self) -> Path:
        return self._destination

    @property
    def existing_folder(self) -> Path:
        return self._existing

    def merge_and_save(self, symbol: str, fresh: SymbolSeries) -> Path:
        """Merge ``fresh`` with the published file for ``symbol`` and replace the output.

        Fresh values always win; published values only fill gaps. ``fresh`` is
        not modified.

        Returns:
            Path of the written file.

        Raises:
            ParseError: The published file is malformed. Nothing is written.
        """
        name = symbol_file_name(symbol)
        merged: SymbolSeries = {}

        existing_path = self._existing / name
        if existing_path.is_file():
            merged.update(read_series(existing_path))
            backfilled = len(merged.keys() - fresh.keys())
        else:
            backfilled = 0
        merged.update(fresh)

        lines = [format_line(ts, merged[ts]) for ts in sorted(merged)]
        final_path = self._destination / name
        self._write_atomic(final_path, lines)

        logger.debug(
            "series_saved",
            symbol=symbol,
            path=str(final_path),
            rows=len(lines),
            backfilled=backfilled,
        )
        return final_path

    def _write_atomic(self, final_path: Path, lines: list[str]) -> None:
        """Write to a temp file, then rename it over ``final_path``.

        Readers see either the old file or the new one, never a partial write.
        """
        fd, temp_name = tempfile.mkstemp(suffix=".tmp", dir=self._scratch)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                for line in lines:
                    f.write(line)
                    f.write("\n")
            os.replace(temp_name, final_path)
        except BaseException:
            try:
                os.unlink(temp_name)
            except FileNotFoundError:
                pass
            raise

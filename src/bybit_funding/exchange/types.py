"""Exchange-specific type definitions.

Instruments come straight from Bybit's v5 instruments-info listing.
"""

from dataclasses import dataclass
from enum import Enum


class Category(str, Enum):
    """Bybit derivatives market grouping."""

    LINEAR = "linear"  # USDT/USDC-margined
    INVERSE = "inverse"  # coin-margined


@dataclass(frozen=True)
class Instrument:
    """A tradable contract from the exchange instrument catalog.

    launch_timestamp is in epoch milliseconds; the category is stamped on by
    the catalog since the raw listing records do not carry it.
    """

    symbol: str
    contract_type: str
    category: Category
    launch_timestamp: int

    @property
    def is_perpetual(self) -> bool:
        """True for LinearPerpetual / InversePerpetual, false for dated futures."""
        return self.contract_type.lower().endswith("perpetual")

"""Price oracle interface."""

from decimal import Decimal
from typing import Protocol


class PriceOracle(Protocol):
    """
    Interface every USD price source must implement.

    Methods
    -------
    price_of(mints)
        Fetch current USD spot prices for a set of mints

    """

    def price_of(self, mints: set[str]) -> dict[str, Decimal]:
        """
        Fetch current USD prices for multiple mints.

        Implementations must not raise for network or data failures; a mint
        without a usable price is simply left out of the result.

        Parameters
        ----------
        mints : set[str]
            Mint addresses to price

        Returns
        -------
        dict[str, Decimal]
            Mapping of mint to USD price. Missing entries mean unknown, never zero.

        """
        ...

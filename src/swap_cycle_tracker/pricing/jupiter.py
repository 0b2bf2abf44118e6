"""Jupiter pricing service for fetching Solana token USD prices."""

import logging
from decimal import Decimal, InvalidOperation

import httpx

logger = logging.getLogger(__name__)

# Jupiter rejects price requests with more ids than this
MAX_IDS_PER_REQUEST = 50


class JupiterPricing:
    """
    Fetches current token prices from the Jupiter price API.

    Failures never raise: a mint without a usable price is left out of the
    result so callers treat it as unknown.

    Parameters
    ----------
    base_url : str
        Jupiter API base URL
    timeout : float
        Request timeout in seconds
    client : httpx.Client | None
        HTTP client to use. A new client is created if None.
    batch_size : int
        Maximum number of mints per request

    """

    def __init__(
        self,
        base_url: str = "https://lite-api.jup.ag",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        batch_size: int = MAX_IDS_PER_REQUEST,
    ) -> None:
        if batch_size < 1:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout)
        self.batch_size = batch_size

    def price_of(self, mints: set[str]) -> dict[str, Decimal]:
        """
        Fetch USD prices for multiple mints, ``batch_size`` mints per request.

        A failed request only leaves the mints of its own batch unknown.

        Parameters
        ----------
        mints : set[str]
            Mint addresses

        Returns
        -------
        dict[str, Decimal]
            Mapping of mint to USD price, only for mints with a positive price

        Examples
        --------
        >>> pricing = JupiterPricing()
        >>> prices = pricing.price_of({"So11111111111111111111111111111111111111112"})

        """
        if not mints:
            return {}

        ordered = sorted(mints)
        prices_data: dict = {}
        for start in range(0, len(ordered), self.batch_size):
            prices_data.update(self._fetch_batch_prices(ordered[start : start + self.batch_size]))

        result = {}
        for mint in mints:
            price = self._parse_price(prices_data.get(mint))
            if price is not None:
                result[mint] = price

        return result

    def get_price(self, mint: str) -> Decimal | None:
        """
        Fetch USD price for a single mint.

        Parameters
        ----------
        mint : str
            Mint address

        Returns
        -------
        Decimal | None
            USD price, None if unknown

        """
        return self.price_of({mint}).get(mint)

    def _fetch_batch_prices(self, mints: list[str]) -> dict:
        """
        Fetch prices from the Jupiter API.

        Parameters
        ----------
        mints : list[str]
            Mint addresses

        Returns
        -------
        dict
            Raw API response keyed by mint, empty on any failure

        """
        try:
            url = f"{self.base_url}/price/v3"
            response = self.client.get(url, params={"ids": ",".join(mints)})
            response.raise_for_status()

            data = response.json()
        except httpx.HTTPError as e:
            logger.warning("Jupiter price request failed for %d mints: %s", len(mints), e)
            return {}
        except ValueError as e:
            logger.warning("Jupiter price response is not valid JSON: %s", e)
            return {}

        if not isinstance(data, dict):
            return {}
        return data

    def _parse_price(self, price_info: object) -> Decimal | None:
        """
        Extract a positive USD price from one response entry.

        Parameters
        ----------
        price_info : object
            Entry of the raw response for one mint

        Returns
        -------
        Decimal | None
            Price, or None if absent or not positive

        """
        if not isinstance(price_info, dict) or price_info.get("usdPrice") is None:
            return None
        try:
            price = Decimal(str(price_info["usdPrice"]))
        except InvalidOperation:
            return None
        if not price.is_finite() or price <= 0:
            return None
        return price

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()

    def __enter__(self) -> "JupiterPricing":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()

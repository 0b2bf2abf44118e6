"""Engine configuration model."""

from decimal import Decimal

from pydantic import BaseModel, Field


class BaseAsset(BaseModel):
    """
    Asset treated as funding/settlement capital rather than a position.

    Attributes
    ----------
    symbol : str
        Token symbol (e.g., 'SOL', 'USDC')
    mint : str | None
        Mint address. When set, deltas on this mint match regardless of symbol.

    """

    symbol: str
    mint: str | None = None

    def matches(self, mint: str, symbol: str) -> bool:
        """
        Check if a token delta refers to this asset.

        Parameters
        ----------
        mint : str
            Mint address of the delta
        symbol : str
            Symbol of the delta

        Returns
        -------
        bool
            True if either the mint or the symbol matches

        """
        if self.mint is not None and mint == self.mint:
            return True
        return symbol == self.symbol


class EngineConfig(BaseModel):
    """
    Configuration injected into the normalizer, classifier and price cache.

    Attributes
    ----------
    settlement_asset : BaseAsset
        Designated settlement token (SOL on Solana)
    stablecoins : list[BaseAsset]
        Assets valued at a 1.00 USD peg
    dust_epsilon : Decimal
        Balance changes at or below this magnitude are noise
    price_cache_ttl : int
        Seconds a fetched price stays valid
    dex_programs : dict[str, str]
        Mapping of DEX program id to venue name
    price_api_url : str
        Base URL of the Jupiter price API
    price_timeout : float
        HTTP timeout in seconds for price requests
    price_batch_size : int
        Maximum number of mints per price request

    """

    settlement_asset: BaseAsset = Field(default_factory=lambda: BaseAsset(symbol="SOL"))
    stablecoins: list[BaseAsset] = Field(default_factory=list)
    dust_epsilon: Decimal = Decimal("0.000001")
    price_cache_ttl: int = 300
    dex_programs: dict[str, str] = Field(default_factory=dict)
    price_api_url: str = "https://lite-api.jup.ag"
    price_timeout: float = 30.0
    price_batch_size: int = Field(default=50, ge=1)

    @property
    def base_assets(self) -> list[BaseAsset]:
        """Settlement asset followed by all stablecoins."""
        return [self.settlement_asset, *self.stablecoins]

    def is_stablecoin(self, mint: str, symbol: str) -> bool:
        """Return True if the token is one of the configured stablecoins."""
        return any(asset.matches(mint, symbol) for asset in self.stablecoins)

    def is_base(self, mint: str, symbol: str) -> bool:
        """Return True if the token is the settlement asset or a stablecoin."""
        return any(asset.matches(mint, symbol) for asset in self.base_assets)

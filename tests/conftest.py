"""Pytest configuration for swap-cycle-tracker tests."""

from decimal import Decimal

import pytest

from swap_cycle_tracker.core.config import BaseAsset, EngineConfig
from swap_cycle_tracker.core.models import Direction, Leg, TokenDelta, TransactionType, ValuationSource

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
TKN_MINT = "5UUH9RTDiSpq6HKS6bp4NdU9PNJpXRXuiw6ShBTBhgH2"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


class FakeOracle:
    """Price oracle double returning fixed prices and recording queries."""

    def __init__(self, prices: dict[str, Decimal] | None = None) -> None:
        self.prices = prices or {}
        self.calls: list[set[str]] = []

    def price_of(self, mints: set[str]) -> dict[str, Decimal]:
        self.calls.append(set(mints))
        return {mint: self.prices[mint] for mint in mints if mint in self.prices}


@pytest.fixture
def config() -> EngineConfig:
    """Engine config with SOL settlement and USDC/USDT stablecoins."""
    return EngineConfig(
        settlement_asset=BaseAsset(symbol="SOL", mint=SOL_MINT),
        stablecoins=[BaseAsset(symbol="USDC", mint=USDC_MINT), BaseAsset(symbol="USDT")],
        dex_programs={"JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4": "Jupiter"},
    )


def make_delta(mint: str, change: str, symbol: str) -> TokenDelta:
    return TokenDelta(mint=mint, change=Decimal(change), symbol=symbol, decimals=6)


def make_leg(
    direction: Direction,
    amount: str,
    value: str,
    timestamp: int,
    *,
    mint: str = TKN_MINT,
    symbol: str = "TKN",
    signature: str | None = None,
    slot: int = 0,
    transaction_index: int = 0,
    valuation: ValuationSource = ValuationSource.STABLECOIN_SOLD,
) -> Leg:
    return Leg(
        signature=signature or f"{direction.value}-{timestamp}",
        timestamp=timestamp,
        slot=slot,
        transaction_index=transaction_index,
        direction=direction,
        token_mint=mint,
        token_symbol=symbol,
        counter_mint=USDC_MINT,
        counter_symbol="USDC",
        amount=Decimal(amount),
        usd_value=Decimal(value),
        valuation=valuation,
        fee_lamports=5000,
        transaction_type=TransactionType.SELL if direction == Direction.SELL else None,
    )


def buy(amount: str, value: str, timestamp: int, **kwargs) -> Leg:
    return make_leg(Direction.BUY, amount, value, timestamp, **kwargs)


def sell(amount: str, value: str, timestamp: int, **kwargs) -> Leg:
    return make_leg(Direction.SELL, amount, value, timestamp, **kwargs)

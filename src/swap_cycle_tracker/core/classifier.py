"""Swap classifier emitting directional legs from a transaction's token deltas."""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from swap_cycle_tracker.core.config import EngineConfig
from swap_cycle_tracker.core.models import (
    Direction,
    Leg,
    SwapTransaction,
    TokenDelta,
    TransactionType,
    ValuationSource,
)
from swap_cycle_tracker.pricing.base import PriceOracle

logger = logging.getLogger(__name__)


class SwapClassifier:
    """
    Classifies swaps into buy/sell legs and resolves their USD value.

    Workflow:
    1. Pick the traded pair (first decrease sold, first increase bought)
    2. Value the swap (stablecoin peg first, oracle spot price otherwise)
    3. Emit one leg when one side is a base currency, two legs otherwise

    Parameters
    ----------
    config : EngineConfig
        Base currency configuration
    price_oracle : PriceOracle | None
        Price source for token-to-token swaps. Without one, such swaps are
        valued as unknown.

    """

    def __init__(self, config: EngineConfig, price_oracle: PriceOracle | None = None) -> None:
        self.config = config
        self.price_oracle = price_oracle

    def classify(
        self,
        transaction: SwapTransaction,
        prices: Mapping[str, Decimal] | None = None,
    ) -> list[Leg]:
        """
        Turn one transaction into zero, one, or two legs.

        Parameters
        ----------
        transaction : SwapTransaction
            Transaction with normalized wallet deltas
        prices : Mapping[str, Decimal] | None
            Prefetched USD prices. If None, the oracle is queried when needed.

        Returns
        -------
        list[Leg]
            Legs in emission order (sell before buy for two-leg swaps)

        """
        pair = self.select_pair(transaction.token_deltas)
        if pair is None:
            return []

        sold, bought = pair
        usd_value, valuation = self.value_swap(sold, bought, prices)

        sold_is_base = self.config.is_base(sold.mint, sold.symbol)
        bought_is_base = self.config.is_base(bought.mint, bought.symbol)

        if sold_is_base and not bought_is_base:
            return [self._buy_leg(transaction, sold, bought, usd_value, valuation, transaction.fee_lamports)]

        if not sold_is_base and bought_is_base:
            return [self._sell_leg(transaction, sold, bought, usd_value, valuation)]

        # Token-to-token: the fee is charged once, on the sell side
        return [
            self._sell_leg(transaction, sold, bought, usd_value, valuation),
            self._buy_leg(transaction, sold, bought, usd_value, valuation, 0),
        ]

    def classify_many(self, transactions: Iterable[SwapTransaction]) -> list[Leg]:
        """
        Classify a batch of transactions with a single price lookup.

        All mints involved in token-to-token swaps are priced in one oracle
        query before classification.

        Parameters
        ----------
        transactions : Iterable[SwapTransaction]
            Transactions to classify

        Returns
        -------
        list[Leg]
            Legs of all transactions, in input order

        """
        transactions = list(transactions)

        mints: set[str] = set()
        for transaction in transactions:
            mints |= self.mints_needing_price(transaction)

        prices = self._fetch_prices(mints) if mints else {}
        if mints:
            logger.info("Resolved %d of %d oracle prices", len(prices), len(mints))

        legs = []
        for transaction in transactions:
            legs.extend(self.classify(transaction, prices))
        return legs

    def select_pair(self, deltas: list[TokenDelta]) -> tuple[TokenDelta, TokenDelta] | None:
        """
        Pick the sold and bought token of a swap.

        Parameters
        ----------
        deltas : list[TokenDelta]
            Normalized deltas

        Returns
        -------
        tuple[TokenDelta, TokenDelta] | None
            (sold, bought), or None if the transaction is not a swap

        """
        increases = [d for d in deltas if d.change > 0]
        decreases = [d for d in deltas if d.change < 0]

        if not increases or not decreases:
            return None

        if len(increases) > 1 or len(decreases) > 1:
            logger.debug(
                "Collapsing multi-token swap (%d decreases, %d increases) to its first pair",
                len(decreases),
                len(increases),
            )

        return decreases[0], increases[0]

    def mints_needing_price(self, transaction: SwapTransaction) -> set[str]:
        """
        Mints whose oracle price is needed to value a transaction.

        Parameters
        ----------
        transaction : SwapTransaction
            Transaction to inspect

        Returns
        -------
        set[str]
            Both mints of a swap with no stablecoin side, otherwise empty

        """
        pair = self.select_pair(transaction.token_deltas)
        if pair is None:
            return set()

        sold, bought = pair
        if self.config.is_stablecoin(sold.mint, sold.symbol) or self.config.is_stablecoin(bought.mint, bought.symbol):
            return set()
        return {sold.mint, bought.mint}

    def value_swap(
        self,
        sold: TokenDelta,
        bought: TokenDelta,
        prices: Mapping[str, Decimal] | None = None,
    ) -> tuple[Decimal, ValuationSource]:
        """
        Resolve the USD value of a swap.

        Parameters
        ----------
        sold : TokenDelta
            Token leaving the wallet
        bought : TokenDelta
            Token entering the wallet
        prices : Mapping[str, Decimal] | None
            Prefetched prices. If None, the oracle is queried for both mints.

        Returns
        -------
        tuple[Decimal, ValuationSource]
            USD value and how it was obtained. Unknown values are 0.

        """
        sold_amount = abs(sold.change)
        bought_amount = bought.change

        if self.config.is_stablecoin(sold.mint, sold.symbol):
            return sold_amount, ValuationSource.STABLECOIN_SOLD

        if self.config.is_stablecoin(bought.mint, bought.symbol):
            return bought_amount, ValuationSource.STABLECOIN_BOUGHT

        if prices is None:
            prices = self._fetch_prices({sold.mint, bought.mint})

        sold_price = prices.get(sold.mint)
        if sold_price is not None and sold_price > 0:
            return sold_amount * sold_price, ValuationSource.ORACLE_SOLD

        bought_price = prices.get(bought.mint)
        if bought_price is not None and bought_price > 0:
            return bought_amount * bought_price, ValuationSource.ORACLE_BOUGHT

        logger.info("No price for %s or %s, swap value unknown", sold.symbol, bought.symbol)
        return Decimal("0"), ValuationSource.UNKNOWN

    def _fetch_prices(self, mints: set[str]) -> dict[str, Decimal]:
        """
        Query the oracle, turning any failure into unknown prices.

        Parameters
        ----------
        mints : set[str]
            Mints to price

        Returns
        -------
        dict[str, Decimal]
            Known prices

        """
        if self.price_oracle is None:
            return {}

        try:
            return dict(self.price_oracle.price_of(mints))
        except Exception:
            logger.exception("Price oracle failed for %d mints, treating prices as unknown", len(mints))
            return {}

    def _buy_leg(
        self,
        transaction: SwapTransaction,
        sold: TokenDelta,
        bought: TokenDelta,
        usd_value: Decimal,
        valuation: ValuationSource,
        fee_lamports: int,
    ) -> Leg:
        return Leg(
            signature=transaction.signature,
            timestamp=transaction.timestamp,
            slot=transaction.slot,
            transaction_index=transaction.transaction_index,
            direction=Direction.BUY,
            token_mint=bought.mint,
            token_symbol=bought.symbol,
            counter_mint=sold.mint,
            counter_symbol=sold.symbol,
            amount=bought.change,
            usd_value=usd_value,
            valuation=valuation,
            venue=transaction.venue,
            fee_lamports=fee_lamports,
        )

    def _sell_leg(
        self,
        transaction: SwapTransaction,
        sold: TokenDelta,
        bought: TokenDelta,
        usd_value: Decimal,
        valuation: ValuationSource,
    ) -> Leg:
        return Leg(
            signature=transaction.signature,
            timestamp=transaction.timestamp,
            slot=transaction.slot,
            transaction_index=transaction.transaction_index,
            direction=Direction.SELL,
            token_mint=sold.mint,
            token_symbol=sold.symbol,
            counter_mint=bought.mint,
            counter_symbol=bought.symbol,
            amount=abs(sold.change),
            usd_value=usd_value,
            valuation=valuation,
            venue=transaction.venue,
            fee_lamports=transaction.fee_lamports,
            transaction_type=TransactionType.SELL,
        )

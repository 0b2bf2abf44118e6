"""Cycle aggregator folding a token's legs into ownership cycles."""

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal

from swap_cycle_tracker.core.models import (
    Anomaly,
    AnomalyKind,
    Leg,
    RankedCycle,
    TokenCycleSeries,
    TradeCycle,
)
from swap_cycle_tracker.exceptions import LegOrderError

logger = logging.getLogger(__name__)


def leg_order_key(leg: Leg) -> tuple[int, int, int, str]:
    """
    Chronological sort key for legs.

    Transactions sharing a timestamp, slot and transaction index fall back to
    signature order, so the result never depends on delivery order. Legs of
    one signature compare equal and keep their emission order under a stable
    sort.

    Parameters
    ----------
    leg : Leg
        Leg to order

    Returns
    -------
    tuple[int, int, int, str]
        (timestamp, slot, transaction_index, signature)

    """
    return (*leg.chain_position, leg.signature)


class CycleAggregator:
    """
    Folds chronologically ordered legs into trade cycles with cost-basis P&L.

    A cycle opens on the first leg of a token, on a buy while the running
    balance is zero, or on any leg after the previous cycle completed. It
    completes when the running balance falls to the dust epsilon or below, at
    which point the balance is forced to exactly zero.

    Parameters
    ----------
    dust_epsilon : Decimal
        Completion threshold for the running balance
    strict : bool
        Raise ``LegOrderError`` on out-of-order legs instead of recording an anomaly
    max_workers : int
        Upper bound on threads used by ``aggregate``

    """

    def __init__(
        self,
        dust_epsilon: Decimal = Decimal("0.000001"),
        *,
        strict: bool = False,
        max_workers: int = 4,
    ) -> None:
        self.dust_epsilon = dust_epsilon
        self.strict = strict
        self.max_workers = max_workers

    def fold(self, token_mint: str, legs: Iterable[Leg], wallet: str = "") -> TokenCycleSeries:
        """
        Build the cycle series of one token from its full leg history.

        Parameters
        ----------
        token_mint : str
            Mint the legs belong to
        legs : Iterable[Leg]
            Legs in ascending (timestamp, slot, transaction_index) order
        wallet : str
            Wallet address recorded on the series

        Returns
        -------
        TokenCycleSeries
            Series with all cycles, running balance and anomalies

        Raises
        ------
        LegOrderError
            In strict mode, if a leg is older than its predecessor
        ValueError
            If a leg belongs to another mint

        """
        series = TokenCycleSeries(wallet=wallet, token_mint=token_mint)
        previous: Leg | None = None

        for leg in legs:
            if previous is not None and leg.chain_position < previous.chain_position:
                self._report_out_of_order(series, previous, leg)
            self.apply_leg(series, leg)
            previous = leg

        return series

    def apply_leg(self, series: TokenCycleSeries, leg: Leg) -> TradeCycle:
        """
        Apply one leg to a series.

        Parameters
        ----------
        series : TokenCycleSeries
            Series to mutate
        leg : Leg
            Next leg in chronological order

        Returns
        -------
        TradeCycle
            The cycle the leg was applied to

        """
        if leg.token_mint != series.token_mint:
            msg = f"Leg {leg.signature} is for {leg.token_mint}, not {series.token_mint}"
            raise ValueError(msg)

        if not series.token_symbol:
            series.token_symbol = leg.token_symbol

        cycle = series.current_cycle
        if cycle is None or cycle.complete or (series.running_balance == 0 and leg.is_buy):
            cycle = TradeCycle(
                sequence_number=len(series.cycles) + 1,
                token_mint=series.token_mint,
                token_symbol=leg.token_symbol or series.token_symbol,
                start_balance=series.running_balance,
                start_timestamp=leg.timestamp,
            )
            series.cycles.append(cycle)
            series.total_trades = len(series.cycles)

        cycle.legs.append(leg)
        if not leg.usd_value_known:
            cycle.unknown_value_legs += 1

        if leg.is_buy:
            cycle.total_buy_amount += leg.amount
            cycle.total_buy_value_usd += leg.usd_value
            series.running_balance += leg.amount
        else:
            cycle.total_sell_amount += leg.amount
            cycle.total_sell_value_usd += leg.usd_value
            series.running_balance -= leg.amount

        cycle.end_balance = series.running_balance

        if series.running_balance < -self.dust_epsilon:
            self._report_negative_balance(series, leg)

        if series.running_balance <= self.dust_epsilon:
            cycle.complete = True
            cycle.end_timestamp = leg.timestamp
            cycle.duration_seconds = cycle.end_timestamp - cycle.start_timestamp
            series.running_balance = Decimal("0")

        cycle.realized_pnl = cycle.total_sell_value_usd - cycle.total_sell_amount * cycle.avg_buy_price
        return cycle

    def aggregate(self, legs: Iterable[Leg], wallet: str = "") -> list[TokenCycleSeries]:
        """
        Fold the legs of every token of a wallet.

        Legs are grouped by mint and sorted with ``leg_order_key`` before folding.
        Tokens share no state, so their folds run concurrently.

        Parameters
        ----------
        legs : Iterable[Leg]
            Legs of all tokens, in any order
        wallet : str
            Wallet address

        Returns
        -------
        list[TokenCycleSeries]
            One series per token, most recently active first

        """
        by_mint: dict[str, list[Leg]] = {}
        for leg in legs:
            by_mint.setdefault(leg.token_mint, []).append(leg)

        if not by_mint:
            return []

        series_by_mint: dict[str, TokenCycleSeries] = {}
        with ThreadPoolExecutor(max_workers=max(1, min(len(by_mint), self.max_workers))) as executor:
            future_to_mint = {
                executor.submit(
                    self.fold,
                    mint,
                    sorted(mint_legs, key=leg_order_key),
                    wallet,
                ): mint
                for mint, mint_legs in by_mint.items()
            }

            for future in as_completed(future_to_mint):
                series_by_mint[future_to_mint[future]] = future.result()

        # Most recently active token first, ties by mint
        return sorted(
            (series_by_mint[mint] for mint in by_mint),
            key=lambda s: (s.last_activity, s.token_mint),
            reverse=True,
        )

    def _report_out_of_order(self, series: TokenCycleSeries, previous: Leg, leg: Leg) -> None:
        detail = (
            f"leg {leg.signature} at {leg.timestamp} (slot {leg.slot}, index {leg.transaction_index}) follows "
            f"{previous.signature} at {previous.timestamp} "
            f"(slot {previous.slot}, index {previous.transaction_index})"
        )
        if self.strict:
            raise LegOrderError(detail)

        logger.error("Out-of-order leg for %s: %s", series.token_mint, detail)
        series.anomalies.append(
            Anomaly(
                kind=AnomalyKind.OUT_OF_ORDER,
                token_mint=series.token_mint,
                signature=leg.signature,
                timestamp=leg.timestamp,
                detail=detail,
            )
        )

    def _report_negative_balance(self, series: TokenCycleSeries, leg: Leg) -> None:
        detail = f"running balance {series.running_balance} after selling {leg.amount}"
        logger.warning("Negative balance for %s (%s): %s", series.token_symbol, series.token_mint, detail)
        series.anomalies.append(
            Anomaly(
                kind=AnomalyKind.NEGATIVE_BALANCE,
                token_mint=series.token_mint,
                signature=leg.signature,
                timestamp=leg.timestamp,
                detail=detail,
            )
        )


def order_cycles(series: Sequence[TokenCycleSeries]) -> list[RankedCycle]:
    """
    Flatten all cycles of a wallet for presentation.

    Global sequence numbers follow series order then cycle order; the result
    is sorted by start timestamp, most recent first.

    Parameters
    ----------
    series : Sequence[TokenCycleSeries]
        Per-token series

    Returns
    -------
    list[RankedCycle]
        Cycles with global sequence numbers, newest first

    """
    ranked = []
    counter = 1
    for token_series in series:
        for cycle in token_series.cycles:
            ranked.append(RankedCycle(global_sequence_number=counter, cycle=cycle))
            counter += 1

    ranked.sort(key=lambda r: r.cycle.start_timestamp, reverse=True)
    return ranked

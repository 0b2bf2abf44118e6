"""Trade cycle engine orchestrating normalization, classification, labeling and aggregation."""

import logging
from collections.abc import Iterable, Mapping

from swap_cycle_tracker.core.aggregator import CycleAggregator, leg_order_key, order_cycles
from swap_cycle_tracker.core.classifier import SwapClassifier
from swap_cycle_tracker.core.config import EngineConfig
from swap_cycle_tracker.core.labeler import label_legs
from swap_cycle_tracker.core.models import Leg, RawTransaction, SwapTransaction, WalletReport
from swap_cycle_tracker.core.normalizer import DeltaNormalizer
from swap_cycle_tracker.pricing.base import PriceOracle

logger = logging.getLogger(__name__)


class TradeCycleEngine:
    """
    Runs the full pipeline for one wallet.

    Workflow:
    1. Normalize raw transactions into swap transactions
    2. Classify all swaps into legs (one batched price lookup)
    3. Label legs most-recent-first
    4. Fold legs per token into cycles
    5. Order cycles for presentation

    Every run recomputes everything from the given history.

    Parameters
    ----------
    config : EngineConfig
        Engine configuration
    price_oracle : PriceOracle | None
        Price source for token-to-token swaps
    symbols : Mapping[str, str] | None
        Known mint to symbol mapping
    strict : bool
        Raise on out-of-order legs instead of recording anomalies

    """

    def __init__(
        self,
        config: EngineConfig,
        price_oracle: PriceOracle | None = None,
        symbols: Mapping[str, str] | None = None,
        *,
        strict: bool = False,
    ) -> None:
        self.config = config
        self.normalizer = DeltaNormalizer(config, symbols)
        self.classifier = SwapClassifier(config, price_oracle)
        self.aggregator = CycleAggregator(config.dust_epsilon, strict=strict)

    def build_legs(self, transactions: Iterable[RawTransaction], wallet: str) -> list[Leg]:
        """
        Normalize, classify and label transactions.

        Parameters
        ----------
        transactions : Iterable[RawTransaction]
            Transactions of the wallet, in any order
        wallet : str
            Wallet address

        Returns
        -------
        list[Leg]
            Labeled legs, most recent first

        """
        swaps = [self.normalizer.to_swap_transaction(raw, wallet) for raw in transactions]
        return self._classify_and_label(swaps)

    def legs_from_swaps(self, swaps: Iterable[SwapTransaction]) -> list[Leg]:
        """
        Classify and label transactions that already carry wallet deltas.

        The deltas are netted and dust-filtered before classification.

        Parameters
        ----------
        swaps : Iterable[SwapTransaction]
            Transactions, in any order

        Returns
        -------
        list[Leg]
            Labeled legs, most recent first

        """
        normalized = [
            swap.model_copy(update={"token_deltas": self.normalizer.normalize(swap.token_deltas)}) for swap in swaps
        ]
        return self._classify_and_label(normalized)

    def _classify_and_label(self, swaps: list[SwapTransaction]) -> list[Leg]:
        legs = self.classifier.classify_many(swaps)
        logger.info("Classified %d transactions into %d legs", len(swaps), len(legs))

        # Stable sort keeps sell-before-buy emission order within one signature
        legs.sort(key=leg_order_key, reverse=True)
        return label_legs(legs)

    def run(self, transactions: Iterable[RawTransaction], wallet: str) -> WalletReport:
        """
        Compute the full report for one wallet.

        Parameters
        ----------
        transactions : Iterable[RawTransaction]
            Transactions of the wallet, in any order
        wallet : str
            Wallet address

        Returns
        -------
        WalletReport
            Labeled legs, per-token series and ordered cycles

        """
        legs = self.build_legs(transactions, wallet)
        series = self.aggregator.aggregate(legs, wallet)
        report = WalletReport(wallet=wallet, legs=legs, series=series, cycles=order_cycles(series))

        anomalies = report.anomalies
        if anomalies:
            logger.warning("%d anomalies detected for %s", len(anomalies), wallet)
        return report

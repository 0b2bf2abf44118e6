"""Core functionality including models, normalizer, classifier, labeler and aggregator."""

from swap_cycle_tracker.core.aggregator import CycleAggregator, leg_order_key, order_cycles
from swap_cycle_tracker.core.classifier import SwapClassifier
from swap_cycle_tracker.core.config import BaseAsset, EngineConfig
from swap_cycle_tracker.core.engine import TradeCycleEngine
from swap_cycle_tracker.core.labeler import label_legs
from swap_cycle_tracker.core.models import (
    Anomaly,
    AnomalyKind,
    Direction,
    Leg,
    RankedCycle,
    RawTransaction,
    SwapTransaction,
    TokenBalance,
    TokenCycleSeries,
    TokenDelta,
    TradeCycle,
    TransactionType,
    ValuationSource,
    WalletReport,
)
from swap_cycle_tracker.core.normalizer import DeltaNormalizer

__all__ = [
    "Anomaly",
    "AnomalyKind",
    "BaseAsset",
    "CycleAggregator",
    "DeltaNormalizer",
    "Direction",
    "EngineConfig",
    "Leg",
    "RankedCycle",
    "RawTransaction",
    "SwapClassifier",
    "SwapTransaction",
    "TokenBalance",
    "TokenCycleSeries",
    "TokenDelta",
    "TradeCycle",
    "TradeCycleEngine",
    "TransactionType",
    "ValuationSource",
    "WalletReport",
    "label_legs",
    "leg_order_key",
    "order_cycles",
]

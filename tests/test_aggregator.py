"""Tests for the trade cycle state machine."""

from decimal import Decimal

import pytest

from conftest import BONK_MINT, TKN_MINT, WALLET, buy, sell
from swap_cycle_tracker.core.aggregator import CycleAggregator, leg_order_key, order_cycles
from swap_cycle_tracker.core.models import AnomalyKind, ValuationSource
from swap_cycle_tracker.exceptions import LegOrderError


@pytest.fixture
def aggregator() -> CycleAggregator:
    return CycleAggregator()


def test_empty_history(aggregator):
    """No legs means no cycles and a zero balance."""
    series = aggregator.fold(TKN_MINT, [])

    assert series.cycles == []
    assert series.total_trades == 0
    assert series.running_balance == Decimal("0")


def test_simple_round_trip(aggregator):
    """Buy 100 for $50, sell 100 for $60: closed cycle with $10 profit."""
    series = aggregator.fold(TKN_MINT, [buy("100", "50", 1000), sell("100", "60", 2000)], wallet=WALLET)

    assert series.wallet == WALLET
    assert series.token_symbol == "TKN"
    assert series.running_balance == Decimal("0")
    assert len(series.cycles) == 1

    cycle = series.cycles[0]
    assert cycle.complete is True
    assert cycle.realized_pnl == Decimal("10")
    assert cycle.total_buy_amount == Decimal("100")
    assert cycle.total_sell_value_usd == Decimal("60")
    assert len(cycle.buys) == 1
    assert len(cycle.sells) == 1


def test_multi_buy_cost_basis(aggregator):
    """Two buys average into the cost basis of the sell."""
    series = aggregator.fold(
        TKN_MINT,
        [buy("50", "25", 1000), buy("50", "30", 1500), sell("100", "70", 2000)],
    )

    cycle = series.cycles[0]
    assert cycle.avg_buy_price == Decimal("0.55")
    assert cycle.total_buy_value_usd == Decimal("55")
    assert cycle.realized_pnl == Decimal("15")
    assert cycle.complete is True


def test_partial_sell(aggregator):
    """Partial exits keep the cycle open with a live cost-basis P&L."""
    series = aggregator.fold(TKN_MINT, [buy("100", "50", 1000), sell("60", "40", 2000)])

    cycle = series.cycles[0]
    assert cycle.complete is False
    assert cycle.end_balance == Decimal("40")
    assert series.running_balance == Decimal("40")
    assert cycle.realized_pnl == Decimal("10")
    assert cycle.end_timestamp is None
    assert cycle.duration_seconds is None


def test_new_cycle_after_completion(aggregator):
    """A buy after a full exit opens a new cycle with the next sequence number."""
    series = aggregator.fold(
        TKN_MINT,
        [buy("100", "50", 1000), sell("100", "60", 2000), buy("200", "120", 3000)],
    )

    assert series.total_trades == 2
    first, second = series.cycles
    assert first.complete is True
    assert first.realized_pnl == Decimal("10")
    assert len(first.legs) == 2
    assert second.sequence_number == 2
    assert second.complete is False
    assert second.total_buy_amount == Decimal("200")
    assert second.start_balance == Decimal("0")
    assert second.start_timestamp == 3000


def test_completion_is_monotonic(aggregator):
    """A completed cycle never accepts further legs."""
    legs = [buy("10", "10", 1), sell("10", "12", 2), buy("5", "5", 3), sell("5", "6", 4), buy("1", "1", 5)]

    series = aggregator.fold(TKN_MINT, legs)

    assert [c.sequence_number for c in series.cycles] == [1, 2, 3]
    assert [c.complete for c in series.cycles] == [True, True, False]
    assert [len(c.legs) for c in series.cycles] == [2, 2, 1]


def test_completion_forces_exact_zero(aggregator):
    """A residue within the dust epsilon closes the cycle and is wiped."""
    series = aggregator.fold(TKN_MINT, [buy("100.0000005", "50", 1000), sell("100", "60", 2000)])

    cycle = series.cycles[0]
    assert cycle.complete is True
    assert cycle.end_balance == Decimal("0.0000005")
    assert series.running_balance == Decimal("0")


def test_duration(aggregator):
    """Duration spans the opening and closing legs."""
    series = aggregator.fold(TKN_MINT, [buy("100", "50", 1000), sell("100", "60", 2500)])

    cycle = series.cycles[0]
    assert cycle.start_timestamp == 1000
    assert cycle.end_timestamp == 2500
    assert cycle.duration_seconds == 1500


def test_balance_invariant_on_every_prefix(aggregator):
    """Running balance equals bought minus sold for every prefix."""
    legs = [
        buy("10", "5", 1),
        buy("2.5", "1", 2),
        sell("4", "3", 3),
        buy("1.25", "1", 4),
        sell("3.75", "2", 5),
    ]

    for end in range(1, len(legs) + 1):
        prefix = legs[:end]
        series = aggregator.fold(TKN_MINT, prefix)
        expected = sum((leg.amount for leg in prefix if leg.is_buy), Decimal("0")) - sum(
            (leg.amount for leg in prefix if leg.is_sell), Decimal("0")
        )
        assert abs(series.running_balance - expected) <= Decimal("0.000001")


def test_negative_balance_is_an_anomaly(aggregator):
    """Selling more than was bought is tolerated and reported."""
    series = aggregator.fold(TKN_MINT, [buy("10", "5", 1), sell("15", "9", 2)])

    cycle = series.cycles[0]
    assert cycle.complete is True
    assert cycle.end_balance == Decimal("-5")
    assert series.running_balance == Decimal("0")
    assert [a.kind for a in series.anomalies] == [AnomalyKind.NEGATIVE_BALANCE]
    assert series.anomalies[0].signature == "sell-2"


def test_sell_without_prior_buy(aggregator):
    """A lone sell opens and immediately closes a cycle; P&L is the full proceeds."""
    series = aggregator.fold(TKN_MINT, [sell("5", "3", 1)])

    cycle = series.cycles[0]
    assert cycle.complete is True
    assert cycle.realized_pnl == Decimal("3")
    assert series.anomalies[0].kind == AnomalyKind.NEGATIVE_BALANCE


def test_out_of_order_is_reported(aggregator):
    """Legs arriving out of order are recorded as anomalies."""
    series = aggregator.fold(TKN_MINT, [buy("10", "5", 200), sell("10", "6", 100)])

    assert [a.kind for a in series.anomalies] == [AnomalyKind.OUT_OF_ORDER]


def test_out_of_order_strict_raises():
    """Strict mode refuses out-of-order legs."""
    aggregator = CycleAggregator(strict=True)

    with pytest.raises(LegOrderError):
        aggregator.fold(TKN_MINT, [buy("10", "5", 200), sell("10", "6", 100)])


def test_same_timestamp_ordered_by_slot(aggregator):
    """Equal timestamps compare by slot."""
    series = aggregator.fold(
        TKN_MINT,
        [buy("10", "5", 100, slot=9), sell("10", "6", 100, slot=3)],
    )

    assert series.anomalies[0].kind == AnomalyKind.OUT_OF_ORDER


def test_foreign_mint_rejected(aggregator):
    """Folding a leg of another token is a programming error."""
    with pytest.raises(ValueError):
        aggregator.fold(TKN_MINT, [buy("1", "1", 1, mint=BONK_MINT)])


def test_unknown_value_legs_counted(aggregator):
    """Cycles count legs whose USD value is unknown."""
    series = aggregator.fold(
        TKN_MINT,
        [buy("10", "0", 1, valuation=ValuationSource.UNKNOWN), buy("10", "5", 2)],
    )

    assert series.cycles[0].unknown_value_legs == 1


def test_aggregate_groups_and_sorts(aggregator):
    """Legs of a wallet are grouped by token, sorted, and series ordered by recent activity."""
    legs = [
        sell("100", "60", 2000),
        buy("1", "1", 3000, mint=BONK_MINT, symbol="BONK"),
        buy("100", "50", 1000),
    ]

    series = aggregator.aggregate(legs, wallet=WALLET)

    assert [s.token_symbol for s in series] == ["BONK", "TKN"]
    tkn = series[1]
    assert tkn.anomalies == []
    assert tkn.cycles[0].complete is True
    assert tkn.cycles[0].realized_pnl == Decimal("10")
    assert all(s.wallet == WALLET for s in series)


def test_aggregate_empty(aggregator):
    assert aggregator.aggregate([]) == []


def test_order_cycles():
    """Cycles are numbered in series order and sorted by start, newest first."""
    aggregator = CycleAggregator()
    tkn = aggregator.fold(TKN_MINT, [buy("1", "1", 100), sell("1", "2", 200), buy("1", "1", 500)])
    bonk = aggregator.fold(BONK_MINT, [buy("1", "1", 300, mint=BONK_MINT, symbol="BONK")])

    ranked = order_cycles([tkn, bonk])

    assert [r.global_sequence_number for r in ranked] == [2, 3, 1]
    assert [r.cycle.start_timestamp for r in ranked] == [500, 300, 100]
    assert ranked[1].cycle.token_symbol == "BONK"


def test_same_slot_ordered_by_transaction_index(aggregator):
    """Transactions within one slot fold in transaction index order."""
    legs = [sell("10", "6", 100, slot=5, transaction_index=3), buy("10", "5", 100, slot=5, transaction_index=1)]

    series = aggregator.aggregate(legs)[0]

    assert series.anomalies == []
    assert [(c.complete, len(c.legs)) for c in series.cycles] == [(True, 2)]
    assert series.cycles[0].realized_pnl == Decimal("1")


def test_transaction_index_out_of_order_is_reported(aggregator):
    series = aggregator.fold(
        TKN_MINT,
        [buy("10", "5", 100, slot=5, transaction_index=4), sell("10", "6", 100, slot=5, transaction_index=2)],
    )

    assert [a.kind for a in series.anomalies] == [AnomalyKind.OUT_OF_ORDER]


def test_identical_positions_do_not_depend_on_delivery_order(aggregator):
    """Without a transaction index, ties fall back to signature order."""
    first = buy("10", "5", 100, slot=5, signature="A-sig")
    second = sell("10", "6", 100, slot=5, signature="B-sig")

    forward = aggregator.aggregate([first, second])
    backward = aggregator.aggregate([second, first])

    assert forward == backward
    assert forward[0].anomalies == []


def test_leg_order_key():
    leg = buy("1", "1", 100, slot=5, transaction_index=2, signature="sig")

    assert leg_order_key(leg) == (100, 5, 2, "sig")

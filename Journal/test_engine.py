"""
test_engine.py
--------------
Unit tests for PerformanceSummarizer.
"""

from datetime import datetime

import pytest

from charges import normalise_charges
from engine import PerformanceSummarizer
from models import ChargeKind, ChargeLineItem, InstrumentType, TradeOutcome


def _outcome(trade_id, net, instrument=InstrumentType.EQUITY, strategies=(), charges=None,
             gross=None):
    charge_set = normalise_charges(charges)
    gross = net + charge_set.total if gross is None else gross
    return TradeOutcome(
        trade_id=trade_id,
        symbol="HDFCBANK",
        instrument=instrument,
        entry_date=datetime(2024, 3, 4, 10, 0),
        exit_date=datetime(2024, 3, 4, 15, 0),
        entry_value=1000.0,
        exit_value=1000.0 + gross,
        turnover=2000.0 + gross,
        gross_pnl=gross,
        total_charges=charge_set.total,
        net_pnl=net,
        percentage_return=net / 10,
        charges=charge_set,
        strategies=strategies,
    )


class TestSummarize:

    def test_mixed_with_breakeven(self):
        outcomes = [_outcome("a", 100.0), _outcome("b", -50.0), _outcome("c", 0.0)]
        s = PerformanceSummarizer.summarize(outcomes)
        assert s.total_trades == 3
        assert s.winning_trades == 1
        assert s.losing_trades == 1
        assert s.win_rate == 33.33
        assert s.total_net_pnl == 50.0
        assert s.average_win == 100.0
        assert s.average_loss == -50.0
        assert s.profit_factor == 2.0

    def test_no_losers_gives_zero_profit_factor(self):
        outcomes = [_outcome("a", 200.0), _outcome("b", 300.0)]
        s = PerformanceSummarizer.summarize(outcomes)
        assert s.total_net_pnl == 500.0
        assert s.profit_factor == 0.0
        assert s.average_loss == 0.0

    def test_empty(self):
        s = PerformanceSummarizer.summarize([])
        assert s.total_trades == 0
        assert s.win_rate == 0.0
        assert s.profit_factor == 0.0

    def test_gross_charges_net(self):
        charges = [ChargeLineItem(ChargeKind.BROKERAGE, 10.0)]
        outcomes = [_outcome("a", 90.0, charges=charges), _outcome("b", -30.0, charges=charges)]
        s = PerformanceSummarizer.summarize(outcomes)
        assert s.total_gross_pnl == 80.0
        assert s.total_charges == 20.0
        assert s.total_net_pnl == 60.0

    def test_rounding_happens_once(self):
        outcomes = [_outcome(str(i), 0.004) for i in range(10)]
        s = PerformanceSummarizer.summarize(outcomes)
        assert s.total_net_pnl == 0.04

    def test_idempotent(self):
        outcomes = [_outcome("a", 12.5), _outcome("b", -7.25), _outcome("c", 3.0)]
        assert PerformanceSummarizer.summarize(outcomes) == PerformanceSummarizer.summarize(outcomes)

    @pytest.mark.parametrize(
        "nets",
        [[], [0.0], [1.0, -1.0, 0.0, 0.0], [5.0, 5.0], [-3.0, -0.01, 2.0]],
    )
    def test_win_loss_partition(self, nets):
        s = PerformanceSummarizer.summarize([_outcome(str(i), n) for i, n in enumerate(nets)])
        assert s.winning_trades + s.losing_trades <= s.total_trades
        zeros = sum(1 for n in nets if n == 0)
        assert s.winning_trades + s.losing_trades == s.total_trades - zeros


class TestBreakdowns:

    def test_strategy_rows(self):
        outcomes = [
            _outcome("a", 100.0, strategies=("Breakout",)),
            _outcome("b", -40.0, strategies=("Breakout", "Scalp")),
            _outcome("c", 10.0, strategies=("Scalp",)),
            _outcome("d", 5.0),
        ]
        rows = PerformanceSummarizer.strategy_performance(outcomes)
        assert [r.strategy for r in rows] == ["Breakout", "Scalp"]
        breakout = rows[0]
        assert breakout.trades == 2
        assert breakout.pnl == 60.0
        assert breakout.win_rate == 50.0
        assert breakout.avg_pnl == 30.0
        assert breakout.best_trade == 100.0
        assert breakout.worst_trade == -40.0
        assert rows[1].pnl == -30.0

    def test_strategy_ties_sorted_by_name(self):
        outcomes = [_outcome("a", 10.0, strategies=("Zeta",)), _outcome("b", 10.0, strategies=("Alpha",))]
        rows = PerformanceSummarizer.strategy_performance(outcomes)
        assert [r.strategy for r in rows] == ["Alpha", "Zeta"]

    def test_instrument_rows_in_enum_order(self):
        outcomes = [
            _outcome("a", 10.0, InstrumentType.OPTIONS),
            _outcome("b", -5.0, InstrumentType.EQUITY),
            _outcome("c", 20.0, InstrumentType.OPTIONS),
        ]
        rows = PerformanceSummarizer.instrument_performance(outcomes)
        assert [r.instrument for r in rows] == [InstrumentType.EQUITY, InstrumentType.OPTIONS]
        assert rows[1].trades == 2
        assert rows[1].pnl == 30.0
        assert rows[1].win_rate == 100.0

    def test_charges_breakdown_skips_unused_kinds(self):
        outcomes = [
            _outcome("a", 10.0, charges={"brokerage": 20.0, "gst": 3.6}),
            _outcome("b", 10.0, charges={"brokerage": 20.0}),
            _outcome("c", 10.0),
        ]
        rows = PerformanceSummarizer.charges_breakdown(outcomes)
        assert [(r.kind, r.amount, r.count) for r in rows] == [
            (ChargeKind.BROKERAGE, 40.0, 2),
            (ChargeKind.GST, 3.6, 1),
        ]

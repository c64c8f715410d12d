"""
test_risk.py
------------
Tests for RiskAnalyzer.
"""

from datetime import datetime, timedelta

import pytest

from models import InstrumentType, TradeOutcome
from risk import RiskAnalyzer


def _outcome(trade_id, net, exit_day, pct=None, risk_reward=None, is_open=False):
    entry = datetime(2024, 3, 1, 10, 0)
    return TradeOutcome(
        trade_id=trade_id,
        symbol="SBIN",
        instrument=InstrumentType.FUTURES,
        entry_date=entry,
        exit_date=None if is_open else entry + timedelta(days=exit_day),
        entry_value=1000.0,
        exit_value=1000.0 + net,
        turnover=2000.0 + net,
        gross_pnl=net,
        total_charges=0.0,
        net_pnl=net,
        percentage_return=net / 10 if pct is None else pct,
        is_open=is_open,
        risk_reward=risk_reward,
    )


class TestMaxDrawdown:

    def test_peak_to_trough(self):
        assert RiskAnalyzer.max_drawdown([100, -150, 50]) == pytest.approx(150.0)

    def test_all_losses_from_zero_start(self):
        assert RiskAnalyzer.max_drawdown([-2.0, -2.0, -2.0]) == pytest.approx(6.0)

    @pytest.mark.parametrize("series", [[], [1.0, 2.0, 3.0], [0.0, 0.0], [5.0, 0.0, 1.0]])
    def test_non_decreasing_equity_has_no_drawdown(self, series):
        assert RiskAnalyzer.max_drawdown(series) == 0.0

    @pytest.mark.parametrize("series", [[-1.0], [3.0, -7.5, 2.0, -1.0], [10.0, -10.0, 10.0]])
    def test_never_negative(self, series):
        assert RiskAnalyzer.max_drawdown(series) >= 0


class TestSharpe:

    def test_mean_over_population_std(self):
        # mean 2, population std 1
        assert RiskAnalyzer.sharpe_like([1.0, 3.0]) == pytest.approx(2.0)

    @pytest.mark.parametrize("series", [[], [4.0], [2.5, 2.5, 2.5]])
    def test_zero_when_undefined(self, series):
        assert RiskAnalyzer.sharpe_like(series) == 0.0


class TestAnalyze:

    def test_ordered_by_exit_date(self):
        # Input order would give no drawdown; exit order gives 150.
        outcomes = [
            _outcome("c", 50.0, exit_day=3),
            _outcome("a", 100.0, exit_day=1),
            _outcome("b", -150.0, exit_day=2),
        ]
        risk = RiskAnalyzer.analyze(outcomes)
        assert risk.max_drawdown == 150.0

    def test_open_outcomes_ignored(self):
        outcomes = [_outcome("a", 10.0, 1), _outcome("o", -500.0, 0, is_open=True)]
        assert RiskAnalyzer.analyze(outcomes).max_drawdown == 0.0

    def test_rounded_sharpe(self):
        outcomes = [_outcome("a", 0, 1, pct=1.0), _outcome("b", 0, 2, pct=2.0), _outcome("c", 0, 3, pct=4.0)]
        risk = RiskAnalyzer.analyze(outcomes)
        # mean 7/3, population std sqrt(14/9)
        assert risk.sharpe_ratio == 1.87

    def test_avg_risk_reward_skips_undefined(self):
        outcomes = [
            _outcome("a", 1.0, 1, risk_reward=2.0),
            _outcome("b", 1.0, 2, risk_reward=3.0),
            _outcome("c", 1.0, 3),
        ]
        assert RiskAnalyzer.analyze(outcomes).avg_risk_reward == 2.5

    def test_empty(self):
        risk = RiskAnalyzer.analyze([])
        assert (risk.max_drawdown, risk.sharpe_ratio, risk.avg_risk_reward) == (0.0, 0.0, 0.0)

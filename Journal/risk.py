"""
risk.py
-------
RiskAnalyzer: drawdown and a simplified Sharpe-like ratio over ordered P&L.

The Sharpe figure here is mean / population std-dev of per-trade returns with
a zero risk-free rate.  It is a dashboard indicator, not a finance-grade
annualised Sharpe ratio.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from models import RiskMetrics, TradeOutcome


class RiskAnalyzer:
    """Stateless risk calculator."""

    @staticmethod
    def max_drawdown(series: Iterable[float]) -> float:
        """Classic peak-to-trough drawdown on the running sum of *series*.

        The implicit starting equity is 0 (before any trades), so a series
        like [-2, -2, -2] has a drawdown of 6.

        Returns a non-negative number.  If *series* is empty, returns 0.
        """
        cumulative = 0.0
        peak = 0.0
        max_dd = 0.0

        for pnl in series:
            cumulative += pnl
            if cumulative > peak:
                peak = cumulative
            drawdown = peak - cumulative
            if drawdown > max_dd:
                max_dd = drawdown

        return max_dd

    @staticmethod
    def sharpe_like(series: Sequence[float]) -> float:
        """mean / population std-dev; 0 for an empty or flat series."""
        values = np.asarray(series, dtype=float)
        if values.size == 0:
            return 0.0
        std = values.std()  # ddof=0
        if np.isclose(std, 0.0):
            return 0.0
        return float(values.mean() / std)

    @staticmethod
    def avg_risk_reward(outcomes: Iterable[TradeOutcome]) -> float:
        ratios = [o.risk_reward for o in outcomes if o.risk_reward is not None]
        return sum(ratios) / len(ratios) if ratios else 0.0

    @staticmethod
    def analyze(outcomes: Sequence[TradeOutcome]) -> RiskMetrics:
        """Risk metrics over realised outcomes, taken in exit-date order."""
        closed = sorted(
            (o for o in outcomes if o.exit_date is not None and not o.is_open),
            key=lambda o: (o.exit_date, o.entry_date, o.trade_id),
        )
        return RiskMetrics(
            max_drawdown=round(RiskAnalyzer.max_drawdown(o.net_pnl for o in closed), 2),
            sharpe_ratio=round(RiskAnalyzer.sharpe_like([o.percentage_return for o in closed]), 2),
            avg_risk_reward=round(RiskAnalyzer.avg_risk_reward(closed), 2),
        )

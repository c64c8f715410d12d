"""
engine.py  (analytics)
----------------------
PerformanceSummarizer is a pure-function namespace.  It folds a list of
TradeOutcomes into portfolio statistics.  No IO, no side effects.

Metrics computed
----------------
* Total / winning / losing trades   (win: net > 0, loss: net < 0, zero: neither)
* Win rate (%)                      (0 when there are no trades)
* Gross P&L, charges, net P&L
* Average win / average loss        (net, post-charge figures)
* Profit factor                     (0 when there are no losers: "undefined")
* Per-strategy, per-instrument and per-charge-kind breakdowns

Sums are accumulated at full precision and rounded to 2 dp once, on output.
"""

from __future__ import annotations

from typing import Sequence

from models import (
    ChargeKind,
    ChargeTotal,
    InstrumentPerformance,
    InstrumentType,
    PerformanceSummary,
    StrategyPerformance,
    TradeOutcome,
)


def _r2(value: float) -> float:
    return round(value, 2)


class PerformanceSummarizer:
    """Stateless analytics calculator."""

    @staticmethod
    def summarize(outcomes: Sequence[TradeOutcome]) -> PerformanceSummary:
        """Portfolio statistics for *outcomes*.

        Parameters
        ----------
        outcomes : sequence of TradeOutcome
            Usually the realised outcomes of one aggregation run.

        Returns
        -------
        PerformanceSummary
            Monetary and percentage fields rounded to 2 dp.
        """
        # ------------------------------------------------------------------
        # Counts
        # ------------------------------------------------------------------
        total = len(outcomes)
        winners = [o.net_pnl for o in outcomes if o.net_pnl > 0]
        losers = [o.net_pnl for o in outcomes if o.net_pnl < 0]

        # ------------------------------------------------------------------
        # Totals
        # ------------------------------------------------------------------
        gross = sum(o.gross_pnl for o in outcomes)
        charges = sum(o.total_charges for o in outcomes)
        net = sum(o.net_pnl for o in outcomes)

        won = sum(winners)
        lost = sum(losers)

        return PerformanceSummary(
            total_trades=total,
            winning_trades=len(winners),
            losing_trades=len(losers),
            win_rate=_r2(len(winners) / total * 100 if total > 0 else 0.0),
            total_gross_pnl=_r2(gross),
            total_charges=_r2(charges),
            total_net_pnl=_r2(net),
            average_win=_r2(won / len(winners) if winners else 0.0),
            average_loss=_r2(lost / len(losers) if losers else 0.0),
            profit_factor=_r2(won / abs(lost) if losers and lost != 0 else 0.0),
        )

    # ---------------------------------------------------------------------------
    # Breakdowns
    # ---------------------------------------------------------------------------

    @staticmethod
    def strategy_performance(outcomes: Sequence[TradeOutcome]) -> list[StrategyPerformance]:
        """One row per strategy tag.  A trade with several tags counts under each.

        Sorted by P&L, best first; equal P&L falls back to the strategy name.
        """
        grouped: dict[str, list[float]] = {}
        for o in outcomes:
            for tag in o.strategies:
                grouped.setdefault(tag, []).append(o.net_pnl)

        rows = []
        for strategy, pnls in grouped.items():
            total = sum(pnls)
            wins = sum(1 for p in pnls if p > 0)
            rows.append(
                StrategyPerformance(
                    strategy=strategy,
                    trades=len(pnls),
                    win_rate=_r2(wins / len(pnls) * 100),
                    pnl=_r2(total),
                    avg_pnl=_r2(total / len(pnls)),
                    best_trade=_r2(max(pnls)),
                    worst_trade=_r2(min(pnls)),
                )
            )
        return sorted(rows, key=lambda r: (-r.pnl, r.strategy))

    @staticmethod
    def instrument_performance(outcomes: Sequence[TradeOutcome]) -> list[InstrumentPerformance]:
        rows = []
        for instrument in InstrumentType:
            pnls = [o.net_pnl for o in outcomes if o.instrument is instrument]
            if not pnls:
                continue
            wins = sum(1 for p in pnls if p > 0)
            rows.append(
                InstrumentPerformance(
                    instrument=instrument,
                    trades=len(pnls),
                    pnl=_r2(sum(pnls)),
                    win_rate=_r2(wins / len(pnls) * 100),
                )
            )
        return rows

    @staticmethod
    def charges_breakdown(outcomes: Sequence[TradeOutcome]) -> list[ChargeTotal]:
        """Charge totals per kind, in contract-note order.  Kinds never charged are left out."""
        rows = []
        for kind in ChargeKind:
            count = sum(o.charges.count(kind) for o in outcomes)
            if count == 0:
                continue
            amount = sum(o.charges.amount(kind) for o in outcomes)
            rows.append(ChargeTotal(kind=kind, amount=_r2(amount), count=count))
        return rows

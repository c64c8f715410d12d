"""
export.py
---------
ExportEngine turns an AnalyticsReport into the artefacts the dashboard and
users consume.

Outputs
-------
* the analytics document : camelCase dict / JSON string
* ``trades.csv``         : per-trade outcomes table
* ``rejected.csv``       : records left out of the totals, with reasons
* ``metrics.csv``        : overview KPIs as a single-row CSV
* ``settings.json`` / ``settings.yaml``: charge schedule + engine settings

Every monetary and percentage figure is rounded to 2 dp here, at the boundary.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from enum import Enum
from typing import Any, Optional

import pandas as pd
import yaml

from models import AnalyticsReport, Bucket, ChargeRates, EngineSettings


def _r2(value: float) -> float:
    return round(value, 2)


class ExportEngine:
    """Stateless export utility."""

    # ---------------------------------------------------------------------------
    # Analytics document
    # ---------------------------------------------------------------------------

    @staticmethod
    def report_to_dict(report: AnalyticsReport) -> dict[str, Any]:
        o = report.overview
        period = report.period_analysis
        return {
            "overview": {
                "totalTrades": o.total_trades,
                "winningTrades": o.winning_trades,
                "losingTrades": o.losing_trades,
                "winRate": _r2(o.win_rate),
                "totalGrossPnl": _r2(o.total_gross_pnl),
                "totalCharges": _r2(o.total_charges),
                "totalNetPnl": _r2(o.total_net_pnl),
                "averageWin": _r2(o.average_win),
                "averageLoss": _r2(o.average_loss),
                "profitFactor": _r2(o.profit_factor),
                "openTrades": report.open_trades,
                "unrealizedPnl": _r2(report.unrealized_pnl),
            },
            "strategyPerformance": [
                {
                    "strategy": s.strategy,
                    "trades": s.trades,
                    "winRate": _r2(s.win_rate),
                    "pnl": _r2(s.pnl),
                    "avgPnl": _r2(s.avg_pnl),
                    "bestTrade": _r2(s.best_trade),
                    "worstTrade": _r2(s.worst_trade),
                }
                for s in report.strategy_performance
            ],
            "instrumentPerformance": [
                {
                    "instrument": i.instrument.value,
                    "trades": i.trades,
                    "pnl": _r2(i.pnl),
                    "winRate": _r2(i.win_rate),
                }
                for i in report.instrument_performance
            ],
            "chargesBreakdown": [
                {"type": c.kind.value, "amount": _r2(c.amount), "count": c.count}
                for c in report.charges_breakdown
            ],
            "dailyPnlData": [{"date": b.label, "pnl": _r2(b.pnl)} for b in report.daily_pnl],
            "weekdayAnalysis": [
                {
                    "day": b.label,
                    "trades": b.trade_count,
                    "wins": b.winning_count,
                    "losses": b.losing_count,
                    "totalPnl": _r2(b.pnl),
                    "avgPnl": _r2(b.avg_pnl),
                    "winRate": _r2(b.win_rate),
                }
                for b in report.weekday_analysis
            ],
            "timeOfDayAnalysis": [
                {
                    "slot": b.label,
                    "trades": b.trade_count,
                    "totalPnl": _r2(b.pnl),
                    "winRate": _r2(b.win_rate),
                }
                for b in report.time_of_day
            ],
            "periodAnalysis": {
                "granularity": period.granularity.value,
                "mostProfitable": ExportEngine._period_entry(period.most_profitable),
                "mostLosing": ExportEngine._period_entry(period.most_losing),
                "totalTrades": period.total_trades,
                "totalPnl": _r2(period.total_pnl),
            },
            "riskData": {
                "maxDrawdown": _r2(report.risk.max_drawdown),
                "sharpeRatio": _r2(report.risk.sharpe_ratio),
                "avgRiskReward": _r2(report.risk.avg_risk_reward),
            },
            "rejectedRecords": [
                {"tradeId": r.trade_id, "reason": r.reason.value, "detail": r.detail}
                for r in report.rejected
            ],
        }

    @staticmethod
    def report_to_json(report: AnalyticsReport) -> str:
        return json.dumps(ExportEngine.report_to_dict(report), indent=2)

    # ---------------------------------------------------------------------------
    # Table exports
    # ---------------------------------------------------------------------------

    @staticmethod
    def outcomes_to_csv(report: AnalyticsReport) -> str:
        """Convert per-trade outcomes to a CSV string."""
        if not report.outcomes:
            return "No trades to export.\n"
        return ExportEngine._outcomes_df(report).to_csv(index=False)

    @staticmethod
    def rejected_to_csv(report: AnalyticsReport) -> str:
        if not report.rejected:
            return "No rejected records to export.\n"
        return ExportEngine._rejected_df(report).to_csv(index=False)

    @staticmethod
    def metrics_to_csv(report: AnalyticsReport) -> str:
        """Export overview KPIs as a one-row CSV."""
        o = report.overview
        row: dict[str, Any] = {
            "Total Trades": o.total_trades,
            "Wins": o.winning_trades,
            "Losses": o.losing_trades,
            "Win Rate (%)": _r2(o.win_rate),
            "Gross P&L": _r2(o.total_gross_pnl),
            "Charges": _r2(o.total_charges),
            "Net P&L": _r2(o.total_net_pnl),
            "Profit Factor": _r2(o.profit_factor),
            "Max Drawdown": _r2(report.risk.max_drawdown),
            "Sharpe (simplified)": _r2(report.risk.sharpe_ratio),
            "Open Trades": report.open_trades,
        }
        return pd.DataFrame([row]).to_csv(index=False)

    # ---------------------------------------------------------------------------
    # Configuration exports
    # ---------------------------------------------------------------------------

    @staticmethod
    def settings_to_json(rates: ChargeRates, settings: EngineSettings) -> str:
        return json.dumps(ExportEngine._settings_dict(rates, settings), indent=2)

    @staticmethod
    def settings_to_yaml(rates: ChargeRates, settings: EngineSettings) -> str:
        """Same layout as ``default_settings.yaml``, so the dump can be loaded back."""
        return yaml.dump(
            ExportEngine._settings_dict(rates, settings),
            default_flow_style=False,
            sort_keys=False,
        )

    # ---------------------------------------------------------------------------
    # Internal builders
    # ---------------------------------------------------------------------------

    @staticmethod
    def _period_entry(bucket: Optional[Bucket]) -> Optional[dict[str, Any]]:
        if bucket is None:
            return None
        return {
            "period": bucket.label,
            "pnl": _r2(bucket.pnl),
            "trades": bucket.trade_count,
            "winRate": _r2(bucket.win_rate),
            "date": bucket.start.isoformat() if bucket.start else None,
        }

    @staticmethod
    def _settings_dict(rates: ChargeRates, settings: EngineSettings) -> dict[str, Any]:
        engine = {
            key: value.value if isinstance(value, Enum) else value
            for key, value in asdict(settings).items()
        }
        return {
            "charges": {
                "brokerage": {"type": rates.brokerage_type, "value": rates.brokerage_value},
                "transaction_tax": {
                    "futures": rates.transaction_tax_futures,
                    "options": rates.transaction_tax_options,
                },
                "exchange_fee": rates.exchange_fee,
                "regulatory_fee": rates.regulatory_fee,
                "stamp_duty": rates.stamp_duty,
                "gst": rates.gst,
            },
            "engine": engine,
        }

    @staticmethod
    def _outcomes_df(report: AnalyticsReport) -> pd.DataFrame:
        rows = []
        for t in report.outcomes:
            rows.append(
                {
                    "Trade ID": t.trade_id,
                    "Symbol": t.symbol,
                    "Instrument": t.instrument.value,
                    "Entry Date": t.entry_date,
                    "Exit Date": t.exit_date,
                    "Entry Value": _r2(t.entry_value),
                    "Exit Value": _r2(t.exit_value),
                    "Turnover": _r2(t.turnover),
                    "Gross P&L": _r2(t.gross_pnl),
                    "Charges": _r2(t.total_charges),
                    "Net P&L": _r2(t.net_pnl),
                    "Return (%)": _r2(t.percentage_return),
                    "Status": "open" if t.is_open else "closed",
                    "Holding (min)": t.holding_minutes,
                    "Risk/Reward": _r2(t.risk_reward) if t.risk_reward is not None else None,
                    "Strategies": ", ".join(t.strategies),
                }
            )
        return pd.DataFrame(rows)

    @staticmethod
    def _rejected_df(report: AnalyticsReport) -> pd.DataFrame:
        rows = []
        for r in report.rejected:
            rows.append(
                {
                    "Trade ID": r.trade_id,
                    "Rejection Reason": r.reason.value,
                    "Detail": r.detail,
                }
            )
        return pd.DataFrame(rows)

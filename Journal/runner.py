"""
runner.py
---------
AnalyticsRunner is the orchestrator.  It owns the pipeline and delegates every
calculation to the stateless components.

Pipeline per run
----------------
    records ──FilterEngine (instrument, strategy)──▶ candidates
    candidates ──TradeAggregator──▶ outcomes + rejected
    outcomes ──time window (entry date)──▶ windowed outcomes
    realised windowed outcomes ──▶ Summarizer / RiskAnalyzer / TimeBucketer
    realised outcomes, *no* time window ──▶ strategy performance

The strategy breakdown ignores the time range and covers all history.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

import pytz
import structlog

from aggregator import TradeAggregator
from bucketing import TimeBucketer
from engine import PerformanceSummarizer
from filters import FilterEngine
from models import (
    AnalyticsFilter,
    AnalyticsReport,
    ChargeRates,
    EngineSettings,
    Granularity,
    TradeRecord,
)
from risk import RiskAnalyzer

logger = structlog.get_logger(__name__)


class AnalyticsRunner:
    """Construct once per record set, call ``run`` for each filter.

    Parameters
    ----------
    records : iterable of TradeRecord
        Already fetched from storage.  Malformed records are tolerated.
    rates : ChargeRates
        Charge schedule used when a record carries no charge lines.
    settings : EngineSettings
        Exchange timezone and default period granularity.
    """

    def __init__(
        self,
        records: Iterable[TradeRecord],
        rates: Optional[ChargeRates] = None,
        settings: Optional[EngineSettings] = None,
    ) -> None:
        self.records = tuple(records)
        self.rates = rates or ChargeRates()
        self.settings = settings or EngineSettings()
        self._tz = pytz.timezone(self.settings.timezone)

    # ---------------------------------------------------------------------------
    # Public
    # ---------------------------------------------------------------------------

    def run(
        self,
        flt: AnalyticsFilter,
        now: datetime,
        granularity: Optional[Granularity] = None,
    ) -> AnalyticsReport:
        """Build the full analytics report.  *now* anchors relative time ranges."""
        granularity = granularity or self.settings.period_granularity

        candidates = FilterEngine.select(self.records, flt, now, self._tz, apply_time=False)
        outcomes, rejected = TradeAggregator.resolve_all(candidates, self.rates, self._tz)

        window = FilterEngine.resolve_time_range(flt.time_range, now, self._tz)
        windowed = [o for o in outcomes if window.contains(o.entry_date)]
        realised = [o for o in windowed if not o.is_open]
        still_open = [o for o in windowed if o.is_open]

        logger.debug(
            "analytics_run",
            records=len(self.records),
            candidates=len(candidates),
            in_window=len(windowed),
            open_trades=len(still_open),
            rejected=len(rejected),
        )

        return AnalyticsReport(
            overview=PerformanceSummarizer.summarize(realised),
            open_trades=len(still_open),
            unrealized_pnl=round(sum(o.net_pnl for o in still_open), 2),
            strategy_performance=tuple(
                PerformanceSummarizer.strategy_performance([o for o in outcomes if not o.is_open])
            ),
            instrument_performance=tuple(PerformanceSummarizer.instrument_performance(realised)),
            charges_breakdown=tuple(PerformanceSummarizer.charges_breakdown(realised)),
            daily_pnl=tuple(TimeBucketer.bucket(realised, Granularity.DAY)),
            weekday_analysis=tuple(TimeBucketer.bucket(realised, Granularity.WEEKDAY)),
            time_of_day=tuple(TimeBucketer.time_of_day(realised)),
            period_analysis=TimeBucketer.period_analysis(realised, granularity),
            risk=RiskAnalyzer.analyze(realised),
            outcomes=tuple(windowed),
            rejected=tuple(rejected),
        )

"""
bucketing.py
------------
TimeBucketer groups trade outcomes into calendar buckets.

Keys
----
* day / isoWeek / calendarMonth → exit date (open trades are skipped)
* weekdayName                  → entry date, always seven buckets Mon..Sun
* time of day                  → entry time, fixed session slots

Weeks start on Sunday: week start = date − ((weekday + 1) mod 7) days, and the
label is the "start to end" date range.

Calendar buckets come out in ascending chronological order.  Each bucket is a
frozen value; the fold returns a fresh mapping per step instead of updating one.
"""

from __future__ import annotations

import calendar
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from functools import reduce
from typing import Callable, Iterable, Optional

from models import Bucket, Granularity, PeriodAnalysis, TradeOutcome

WEEKDAY_NAMES = tuple(calendar.day_name)  # Monday first

# (label, start inclusive, end exclusive) in exchange-local wall time
TIME_OF_DAY_SLOTS = (
    ("Pre-Market", time(9, 0), time(9, 15)),
    ("Opening", time(9, 15), time(10, 0)),
    ("Morning", time(10, 0), time(12, 0)),
    ("Afternoon", time(12, 0), time(15, 0)),
    ("Closing", time(15, 0), time(15, 30)),
)
OFF_HOURS = "Off-Hours"


def _tally(bucket: Bucket, outcome: TradeOutcome) -> Bucket:
    return replace(
        bucket,
        pnl=bucket.pnl + outcome.net_pnl,
        trade_count=bucket.trade_count + 1,
        winning_count=bucket.winning_count + (1 if outcome.net_pnl > 0 else 0),
        losing_count=bucket.losing_count + (1 if outcome.net_pnl < 0 else 0),
    )


def _fold(
    outcomes: Iterable[TradeOutcome],
    key: Callable[[TradeOutcome], Optional[Bucket]],
    seed: dict[object, Bucket],
) -> dict[object, Bucket]:
    """Fold outcomes into buckets.  *key* returns the empty bucket an outcome
    belongs to (its identity is the label), or None to skip the outcome."""

    def step(acc: dict[object, Bucket], outcome: TradeOutcome) -> dict[object, Bucket]:
        empty = key(outcome)
        if empty is None:
            return acc
        current = acc.get(empty.label, empty)
        return {**acc, empty.label: _tally(current, outcome)}

    return reduce(step, outcomes, dict(seed))


class TimeBucketer:
    """Stateless calendar grouping."""

    # ---------------------------------------------------------------------------
    # Public
    # ---------------------------------------------------------------------------

    @staticmethod
    def bucket(outcomes: Iterable[TradeOutcome], granularity: Granularity) -> list[Bucket]:
        if granularity is Granularity.WEEKDAY:
            seed = {name: Bucket(label=name, start=None) for name in WEEKDAY_NAMES}
            folded = _fold(outcomes, TimeBucketer._weekday_key, seed)
            return [folded[name] for name in WEEKDAY_NAMES]

        key = TimeBucketer._calendar_key(granularity)
        folded = _fold(outcomes, key, {})
        return sorted(folded.values(), key=lambda b: b.start)

    @staticmethod
    def time_of_day(outcomes: Iterable[TradeOutcome]) -> list[Bucket]:
        """Closed trades grouped by entry time into session slots, zero-filled."""
        labels = [slot[0] for slot in TIME_OF_DAY_SLOTS] + [OFF_HOURS]
        seed = {label: Bucket(label=label, start=None) for label in labels}
        folded = _fold(outcomes, TimeBucketer._slot_key, seed)
        return [folded[label] for label in labels]

    @staticmethod
    def most_profitable(buckets: Iterable[Bucket]) -> Optional[Bucket]:
        """Highest-P&L bucket with at least one trade; earliest wins a tie."""
        best = None
        for b in buckets:
            if b.trade_count and (best is None or b.pnl > best.pnl):
                best = b
        return best

    @staticmethod
    def most_losing(buckets: Iterable[Bucket]) -> Optional[Bucket]:
        worst = None
        for b in buckets:
            if b.trade_count and (worst is None or b.pnl < worst.pnl):
                worst = b
        return worst

    @staticmethod
    def period_analysis(
        outcomes: Iterable[TradeOutcome],
        granularity: Granularity = Granularity.DAY,
    ) -> PeriodAnalysis:
        if granularity is Granularity.WEEKDAY:
            raise ValueError("period analysis needs a calendar granularity")
        buckets = TimeBucketer.bucket(outcomes, granularity)
        return PeriodAnalysis(
            granularity=granularity,
            most_profitable=TimeBucketer.most_profitable(buckets),
            most_losing=TimeBucketer.most_losing(buckets),
            total_trades=sum(b.trade_count for b in buckets),
            total_pnl=sum(b.pnl for b in buckets),
        )

    # ---------------------------------------------------------------------------
    # Private helpers
    # ---------------------------------------------------------------------------

    @staticmethod
    def _calendar_key(granularity: Granularity) -> Callable[[TradeOutcome], Optional[Bucket]]:
        def key(outcome: TradeOutcome) -> Optional[Bucket]:
            if outcome.exit_date is None:
                return None
            day = _as_date(outcome.exit_date)
            if granularity is Granularity.DAY:
                return Bucket(label=day.isoformat(), start=day)
            if granularity is Granularity.ISO_WEEK:
                start = day - timedelta(days=(day.weekday() + 1) % 7)
                end = start + timedelta(days=6)
                return Bucket(label=f"{start.isoformat()} to {end.isoformat()}", start=start)
            start = day.replace(day=1)
            return Bucket(label=start.strftime("%Y-%m"), start=start)

        return key

    @staticmethod
    def _weekday_key(outcome: TradeOutcome) -> Bucket:
        name = WEEKDAY_NAMES[_as_date(outcome.entry_date).weekday()]
        return Bucket(label=name, start=None)

    @staticmethod
    def _slot_key(outcome: TradeOutcome) -> Optional[Bucket]:
        if outcome.exit_date is None:
            return None
        at = outcome.entry_date.time()
        for label, start, end in TIME_OF_DAY_SLOTS:
            if start <= at < end:
                return Bucket(label=label, start=None)
        return Bucket(label=OFF_HOURS, start=None)


def _as_date(moment: datetime) -> date:
    return moment.date() if isinstance(moment, datetime) else moment

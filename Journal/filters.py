"""
filters.py
----------
FilterEngine turns a declarative AnalyticsFilter into concrete predicates.

Time-range keywords (relative to a caller-supplied ``now``)
-----------------------------------------------------------
    today    → 00:00 today            … now
    week     → now − 7 days           … now
    month    → 1st of this month      … now
    quarter  → 1st of this quarter    … now
    year     → 1st of January         … now
    all      → unbounded

An explicit range is widened to whole days: ``from`` at 00:00:00.000 and
``to`` at 23:59:59.999.  An unknown keyword falls back to ``all``; the
fallback is reported through ``KeywordParse`` so callers can see it.

Timezone policy
---------------
Naive datetimes are read as exchange-local wall time and localised; aware ones
are converted.  Every comparison therefore happens between aware datetimes in
the exchange timezone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

import pytz
import structlog

from models import (
    AnalyticsFilter,
    ExplicitRange,
    InstrumentType,
    TimeRange,
    TimeRangeKeyword,
    TimeRangeSelection,
    TradeRecord,
)

logger = structlog.get_logger(__name__)

_END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class KeywordParse:
    """Result of reading a time-range keyword.  ``fell_back`` marks bad input."""

    keyword: TimeRangeKeyword
    raw: object = None
    fell_back: bool = False


def to_exchange_time(moment: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """Localise a naive datetime, or convert an aware one, into *tz*."""
    if moment.tzinfo is None:
        return tz.localize(moment)
    return moment.astimezone(tz)


class FilterEngine:
    """Stateless filter resolver."""

    # ---------------------------------------------------------------------------
    # Time range
    # ---------------------------------------------------------------------------

    @staticmethod
    def parse_keyword(raw: object) -> KeywordParse:
        if isinstance(raw, TimeRangeKeyword):
            return KeywordParse(keyword=raw, raw=raw)
        if raw is None:
            return KeywordParse(keyword=TimeRangeKeyword.ALL, raw=raw)
        try:
            return KeywordParse(keyword=TimeRangeKeyword(str(raw).strip().lower()), raw=raw)
        except ValueError:
            logger.warning("time_range_keyword_unrecognised", raw=raw, fallback="all")
            return KeywordParse(keyword=TimeRangeKeyword.ALL, raw=raw, fell_back=True)

    @staticmethod
    def resolve_time_range(
        selection: TimeRangeSelection,
        now: datetime,
        tz: pytz.BaseTzInfo = pytz.utc,
    ) -> TimeRange:
        """Resolve a keyword or explicit range into a concrete window.

        Parameters
        ----------
        selection : TimeRangeKeyword, str, ExplicitRange or None
            None and unknown strings mean ``all``.
        now : datetime
            Reference instant.  Never read from the system clock here.
        tz : pytz timezone
            Exchange timezone used for day boundaries.
        """
        if isinstance(selection, ExplicitRange):
            return FilterEngine._explicit(selection, tz)

        keyword = FilterEngine.parse_keyword(selection).keyword
        now = to_exchange_time(now, tz)
        today = now.date()

        if keyword is TimeRangeKeyword.ALL:
            return TimeRange()
        if keyword is TimeRangeKeyword.WEEK:
            return TimeRange(start=now - timedelta(days=7), end=now)

        if keyword is TimeRangeKeyword.TODAY:
            first_day = today
        elif keyword is TimeRangeKeyword.MONTH:
            first_day = today.replace(day=1)
        elif keyword is TimeRangeKeyword.QUARTER:
            quarter_month = (today.month - 1) // 3 * 3 + 1
            first_day = date(today.year, quarter_month, 1)
        else:  # YEAR
            first_day = date(today.year, 1, 1)

        return TimeRange(start=tz.localize(datetime.combine(first_day, time.min)), end=now)

    # ---------------------------------------------------------------------------
    # Record selection
    # ---------------------------------------------------------------------------

    @staticmethod
    def matches_instrument(record: TradeRecord, instrument: Optional[InstrumentType]) -> bool:
        return instrument is None or record.leg.instrument is instrument

    @staticmethod
    def matches_strategies(record: TradeRecord, names: Optional[frozenset[str]]) -> bool:
        """A record matches when it carries at least one selected strategy tag."""
        if not names:
            return True
        return any(tag in names for tag in record.strategies)

    @staticmethod
    def select(
        records: Iterable[TradeRecord],
        flt: AnalyticsFilter,
        now: datetime,
        tz: pytz.BaseTzInfo = pytz.utc,
        apply_time: bool = True,
    ) -> list[TradeRecord]:
        """Records passing every predicate of *flt*, in input order.

        The time window applies to the entry date.  ``apply_time=False`` skips
        it; strategy performance is always computed that way.
        """
        window = FilterEngine.resolve_time_range(flt.time_range, now, tz) if apply_time else TimeRange()

        selected = []
        for record in records:
            if not FilterEngine.matches_instrument(record, flt.instrument_type):
                continue
            if not FilterEngine.matches_strategies(record, flt.strategy_names):
                continue
            entry = record.leg.entry_date
            if apply_time and isinstance(entry, datetime):
                if not window.contains(to_exchange_time(entry, tz)):
                    continue
            selected.append(record)
        return selected

    # ---------------------------------------------------------------------------
    # Private helpers
    # ---------------------------------------------------------------------------

    @staticmethod
    def _explicit(selection: ExplicitRange, tz: pytz.BaseTzInfo) -> TimeRange:
        from_day = FilterEngine._as_date(selection.from_date)
        to_day = FilterEngine._as_date(selection.to_date)
        return TimeRange(
            start=tz.localize(datetime.combine(from_day, time.min)),
            end=tz.localize(datetime.combine(to_day, _END_OF_DAY)),
        )

    @staticmethod
    def _as_date(value: date) -> date:
        return value.date() if isinstance(value, datetime) else value

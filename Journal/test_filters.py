"""
test_filters.py
---------------
Tests for FilterEngine.  Every test passes an explicit ``now``.
"""

from datetime import date, datetime, timedelta

import pytest
import pytz

from filters import FilterEngine, to_exchange_time
from models import (
    AnalyticsFilter,
    ExplicitRange,
    InstrumentType,
    PositionSide,
    TimeRangeKeyword,
    TradeLeg,
    TradeRecord,
)

IST = pytz.timezone("Asia/Kolkata")
NOW = IST.localize(datetime(2024, 5, 15, 13, 45))


def _record(trade_id, entry_date, instrument=InstrumentType.EQUITY, strategies=()):
    leg = TradeLeg(
        instrument=instrument,
        position_side=PositionSide.BUY,
        entry_price=100.0,
        quantity=1,
        entry_date=entry_date,
    )
    return TradeRecord(trade_id=trade_id, symbol="TCS", leg=leg, strategies=strategies)


class TestParseKeyword:

    @pytest.mark.parametrize("raw", ["today", "WEEK", " month ", TimeRangeKeyword.QUARTER])
    def test_known_keywords(self, raw):
        parsed = FilterEngine.parse_keyword(raw)
        assert not parsed.fell_back

    def test_none_means_all(self):
        parsed = FilterEngine.parse_keyword(None)
        assert parsed.keyword is TimeRangeKeyword.ALL
        assert not parsed.fell_back

    def test_unknown_falls_back_to_all(self):
        parsed = FilterEngine.parse_keyword("fortnight")
        assert parsed.keyword is TimeRangeKeyword.ALL
        assert parsed.fell_back
        assert parsed.raw == "fortnight"


class TestResolveTimeRange:

    def test_all_is_unbounded(self):
        window = FilterEngine.resolve_time_range(TimeRangeKeyword.ALL, NOW, IST)
        assert window.start is None and window.end is None

    def test_today_starts_at_midnight(self):
        window = FilterEngine.resolve_time_range("today", NOW, IST)
        assert window.start == IST.localize(datetime(2024, 5, 15))
        assert window.end == NOW

    def test_week_is_trailing_seven_days(self):
        window = FilterEngine.resolve_time_range("week", NOW, IST)
        assert window.start == NOW - timedelta(days=7)

    def test_month_quarter_year(self):
        month = FilterEngine.resolve_time_range("month", NOW, IST)
        quarter = FilterEngine.resolve_time_range("quarter", NOW, IST)
        year = FilterEngine.resolve_time_range("year", NOW, IST)
        assert month.start.date() == date(2024, 5, 1)
        assert quarter.start.date() == date(2024, 4, 1)
        assert year.start.date() == date(2024, 1, 1)

    def test_naive_now_is_localised(self):
        window = FilterEngine.resolve_time_range("today", datetime(2024, 5, 15, 13, 45), IST)
        assert window.end == NOW

    def test_explicit_range_covers_whole_days(self):
        window = FilterEngine.resolve_time_range(
            ExplicitRange(date(2024, 5, 1), date(2024, 5, 3)), NOW, IST
        )
        assert window.contains(IST.localize(datetime(2024, 5, 1, 0, 0)))
        assert window.contains(IST.localize(datetime(2024, 5, 3, 23, 59, 59)))
        assert not window.contains(IST.localize(datetime(2024, 5, 4, 0, 0)))
        assert not window.contains(IST.localize(datetime(2024, 4, 30, 23, 59)))

    def test_unknown_keyword_gives_unbounded_window(self):
        window = FilterEngine.resolve_time_range("someday", NOW, IST)
        assert window.start is None


class TestSelect:

    def _records(self):
        return [
            _record("old", datetime(2023, 12, 1, 10, 0), strategies=("Breakout",)),
            _record("fut", datetime(2024, 5, 10, 10, 0), InstrumentType.FUTURES, ("Scalp",)),
            _record("opt", datetime(2024, 5, 15, 9, 30), InstrumentType.OPTIONS,
                    ("Scalp", "Hedged")),
        ]

    def test_no_filter_keeps_everything_in_order(self):
        selected = FilterEngine.select(self._records(), AnalyticsFilter(), NOW, IST)
        assert [r.trade_id for r in selected] == ["old", "fut", "opt"]

    def test_time_filter_uses_entry_date(self):
        selected = FilterEngine.select(self._records(), AnalyticsFilter(time_range="today"), NOW, IST)
        assert [r.trade_id for r in selected] == ["opt"]

    def test_instrument_filter(self):
        flt = AnalyticsFilter(instrument_type=InstrumentType.FUTURES)
        assert [r.trade_id for r in FilterEngine.select(self._records(), flt, NOW, IST)] == ["fut"]

    def test_strategy_filter_matches_any_tag(self):
        flt = AnalyticsFilter(strategy_names=frozenset({"Hedged", "Breakout"}))
        selected = FilterEngine.select(self._records(), flt, NOW, IST)
        assert [r.trade_id for r in selected] == ["old", "opt"]

    def test_empty_strategy_set_means_all(self):
        flt = AnalyticsFilter(strategy_names=frozenset())
        assert len(FilterEngine.select(self._records(), flt, NOW, IST)) == 3

    def test_apply_time_false_ignores_window(self):
        flt = AnalyticsFilter(time_range="today")
        selected = FilterEngine.select(self._records(), flt, NOW, IST, apply_time=False)
        assert len(selected) == 3

    def test_aware_entry_dates_converted(self):
        utc_entry = pytz.utc.localize(datetime(2024, 5, 14, 20, 0))  # 01:30 on the 15th in IST
        rec = _record("late", utc_entry)
        selected = FilterEngine.select([rec], AnalyticsFilter(time_range="today"), NOW, IST)
        assert [r.trade_id for r in selected] == ["late"]
        assert to_exchange_time(utc_entry, IST).day == 15

"""
test_models.py
--------------
Unit tests for the frozen dataclass domain objects.
"""

from dataclasses import FrozenInstanceError
from datetime import datetime

import pytest

from models import (
    Bucket,
    ChargeKind,
    ChargeRates,
    ChargeSet,
    EngineSettings,
    Granularity,
    HedgeLeg,
    InstrumentType,
    PositionSide,
    TimeRange,
    TradeLeg,
)


def _leg(**overrides):
    fields = dict(
        instrument=InstrumentType.FUTURES,
        position_side=PositionSide.BUY,
        entry_price=100.0,
        quantity=10,
        entry_date=datetime(2024, 3, 4, 10, 0),
    )
    fields.update(overrides)
    return TradeLeg(**fields)


class TestChargeRates:
    """Validation gate tests."""

    def test_defaults_are_valid(self):
        r = ChargeRates()
        assert r.brokerage_type == "percentage"
        assert r.brokerage_value == 0.03
        assert r.gst == 0.18

    def test_unknown_brokerage_type_raises(self):
        with pytest.raises(ValueError, match="brokerage_type"):
            ChargeRates(brokerage_type="tiered")

    def test_negative_rate_raises(self):
        with pytest.raises(ValueError, match="stamp_duty"):
            ChargeRates(stamp_duty=-0.1)

    def test_zero_rates_allowed(self):
        r = ChargeRates(brokerage_value=0.0, gst=0.0)
        assert r.brokerage_value == 0.0

    def test_frozen(self):
        r = ChargeRates()
        with pytest.raises(FrozenInstanceError):
            r.gst = 0.2


class TestEngineSettings:

    def test_defaults(self):
        s = EngineSettings()
        assert s.timezone == "Asia/Kolkata"
        assert s.period_granularity is Granularity.DAY

    def test_unknown_timezone_raises(self):
        with pytest.raises(ValueError, match="timezone"):
            EngineSettings(timezone="Mars/Olympus_Mons")

    def test_weekday_granularity_rejected(self):
        with pytest.raises(ValueError, match="period_granularity"):
            EngineSettings(period_granularity=Granularity.WEEKDAY)


class TestTradeLeg:

    def test_open_until_exit_price_set(self):
        leg = _leg()
        assert leg.is_open

    def test_close_returns_closed_copy(self):
        leg = _leg()
        closed = leg.close(110.0, datetime(2024, 3, 4, 14, 0))
        assert not closed.is_open
        assert closed.exit_price == 110.0
        assert leg.is_open  # receiver unchanged

    def test_close_is_one_way(self):
        closed = _leg().close(110.0, datetime(2024, 3, 4, 14, 0))
        with pytest.raises(ValueError, match="already closed"):
            closed.close(120.0, datetime(2024, 3, 5, 14, 0))


class TestHedgeLeg:

    def _hedge(self, side=None):
        return HedgeLeg(
            instrument=InstrumentType.OPTIONS,
            entry_price=5.0,
            quantity=50,
            entry_date=datetime(2024, 3, 4, 10, 0),
            position_side=side,
        )

    def test_side_defaults_to_opposite_of_parent(self):
        assert self._hedge().resolved_side(PositionSide.BUY) is PositionSide.SELL
        assert self._hedge().resolved_side(PositionSide.SELL) is PositionSide.BUY

    def test_recorded_side_wins(self):
        h = self._hedge(side=PositionSide.BUY)
        assert h.resolved_side(PositionSide.BUY) is PositionSide.BUY

    def test_close_is_one_way(self):
        closed = self._hedge().close(7.0, datetime(2024, 3, 4, 15, 0))
        with pytest.raises(ValueError):
            closed.close(8.0, datetime(2024, 3, 4, 15, 10))


class TestChargeSet:

    def test_missing_kind_reads_as_zero(self):
        cs = ChargeSet()
        assert cs.amount(ChargeKind.GST) == 0.0
        assert cs.count(ChargeKind.GST) == 0
        assert cs.total == 0.0

    def test_addition_sums_per_kind(self):
        a = ChargeSet(amounts=((ChargeKind.BROKERAGE, 10.0),), counts=((ChargeKind.BROKERAGE, 1),))
        b = ChargeSet(
            amounts=((ChargeKind.BROKERAGE, 5.0), (ChargeKind.GST, 0.9)),
            counts=((ChargeKind.BROKERAGE, 1), (ChargeKind.GST, 1)),
        )
        total = a + b
        assert total.amount(ChargeKind.BROKERAGE) == pytest.approx(15.0)
        assert total.count(ChargeKind.BROKERAGE) == 2
        assert total.total == pytest.approx(15.9)


class TestSmallValues:

    def test_empty_bucket_rates_are_zero(self):
        b = Bucket(label="Monday", start=None)
        assert b.win_rate == 0.0
        assert b.avg_pnl == 0.0

    def test_bucket_rates(self):
        b = Bucket(label="x", start=None, pnl=90.0, trade_count=3, winning_count=2, losing_count=1)
        assert b.win_rate == pytest.approx(66.6667, rel=1e-4)
        assert b.avg_pnl == pytest.approx(30.0)

    def test_unbounded_time_range_contains_everything(self):
        assert TimeRange().contains(datetime(1999, 1, 1))

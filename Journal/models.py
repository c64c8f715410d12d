"""
models.py
---------
Immutable domain objects for the journal analytics engine.  Trade records come
in from storage already materialised; everything the engine derives from them
(outcomes, summaries, buckets) is a frozen value created fresh on every run.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Union

import pytz


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class InstrumentType(Enum):
    EQUITY = "EQUITY"
    FUTURES = "FUTURES"
    OPTIONS = "OPTIONS"


class PositionSide(Enum):
    BUY = "BUY"
    SELL = "SELL"

    def opposite(self) -> "PositionSide":
        return PositionSide.SELL if self is PositionSide.BUY else PositionSide.BUY


class ChargeKind(Enum):
    """One line on a contract note."""

    BROKERAGE = "BROKERAGE"
    TRANSACTION_TAX = "TRANSACTION_TAX"   # STT
    EXCHANGE_FEE = "EXCHANGE_FEE"
    REGULATORY_FEE = "REGULATORY_FEE"     # SEBI turnover fee
    STAMP_DUTY = "STAMP_DUTY"
    GST = "GST"


class Granularity(Enum):
    DAY = "day"
    ISO_WEEK = "isoWeek"
    CALENDAR_MONTH = "calendarMonth"
    WEEKDAY = "weekdayName"


class TimeRangeKeyword(Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    ALL = "all"


class RejectionReason(Enum):
    """Why a trade record was excluded from aggregation."""

    NON_POSITIVE_ENTRY_PRICE = "non_positive_entry_price"
    NON_POSITIVE_QUANTITY = "non_positive_quantity"
    MISSING_ENTRY_DATE = "missing_entry_date"
    MISSING_EXIT_DATE = "missing_exit_date"
    INVALID_EXIT_PRICE = "invalid_exit_price"
    INVALID_PRICE_LEVEL = "invalid_price_level"  # stop loss / target
    INVALID_HEDGE = "invalid_hedge_leg"
    INVALID_CHARGE = "invalid_charge_line"
    ARITHMETIC_ERROR = "arithmetic_error"   # NaN / inf / type fault while computing


# ---------------------------------------------------------------------------
# Configuration  (charge schedule + engine settings)
# ---------------------------------------------------------------------------

BROKERAGE_TYPES = ("percentage", "flat")


@dataclass(frozen=True)
class ChargeRates:
    """Charge schedule for derivative legs.  Equity legs are always charge-free.

    ``brokerage_value`` is a percent of turnover when ``brokerage_type`` is
    ``percentage`` and an absolute amount per side when it is ``flat``.  Every
    other rate is a plain fraction.
    """

    brokerage_type: str = "percentage"
    brokerage_value: float = 0.03

    transaction_tax_futures: float = 0.0001    # 0.01% on sell value
    transaction_tax_options: float = 0.0005    # 0.05% on premium on sell

    exchange_fee: float = 0.0000173            # 0.00173% on turnover
    regulatory_fee: float = 0.000001           # 0.0001% on turnover
    stamp_duty: float = 0.00003                # 0.003% on turnover
    gst: float = 0.18                          # 18% of brokerage

    def __post_init__(self) -> None:  # noqa: D105
        if self.brokerage_type not in BROKERAGE_TYPES:
            raise ValueError(
                f"brokerage_type must be one of {BROKERAGE_TYPES}, got {self.brokerage_type!r}"
            )
        for name in (
            "brokerage_value",
            "transaction_tax_futures",
            "transaction_tax_options",
            "exchange_fee",
            "regulatory_fee",
            "stamp_duty",
            "gst",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")


@dataclass(frozen=True)
class EngineSettings:
    """Non-rate knobs.  Naive timestamps are read as exchange-local time."""

    timezone: str = "Asia/Kolkata"
    period_granularity: Granularity = Granularity.DAY

    def __post_init__(self) -> None:  # noqa: D105
        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"timezone {self.timezone!r} is not a known tz name") from exc
        if self.period_granularity is Granularity.WEEKDAY:
            raise ValueError("period_granularity must be a calendar granularity, not weekdayName")


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChargeLineItem:
    kind: ChargeKind
    amount: float


@dataclass(frozen=True)
class TradeLeg:
    """One side of a trade.  Open while ``exit_price`` is None."""

    instrument: InstrumentType
    position_side: PositionSide
    entry_price: float
    quantity: float
    entry_date: datetime
    exit_price: Optional[float] = None
    exit_date: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.exit_price is None

    def close(self, exit_price: float, exit_date: datetime) -> "TradeLeg":
        """Return a closed copy.  A closed leg cannot be closed (or reopened) again."""
        if not self.is_open:
            raise ValueError("leg is already closed")
        return replace(self, exit_price=exit_price, exit_date=exit_date)


@dataclass(frozen=True)
class HedgeLeg:
    """Protective leg tied to a main leg.

    When no side is recorded the hedge is taken to be on the opposite side of
    its parent.
    """

    instrument: InstrumentType
    entry_price: float
    quantity: float
    entry_date: datetime
    exit_price: Optional[float] = None
    exit_date: Optional[datetime] = None
    position_side: Optional[PositionSide] = None

    @property
    def is_open(self) -> bool:
        return self.exit_price is None

    def resolved_side(self, parent_side: PositionSide) -> PositionSide:
        return self.position_side or parent_side.opposite()

    def close(self, exit_price: float, exit_date: datetime) -> "HedgeLeg":
        if not self.is_open:
            raise ValueError("hedge leg is already closed")
        return replace(self, exit_price=exit_price, exit_date=exit_date)


@dataclass(frozen=True)
class TradeRecord:
    """A journal entry as handed over by the storage layer."""

    trade_id: str
    symbol: str
    leg: TradeLeg
    charges: Any = ()          # line items, a {kind: amount} mapping, or None
    hedge: Optional[HedgeLeg] = None
    hedge_charges: Any = ()
    strategies: tuple[str, ...] = ()
    last_traded_price: Optional[float] = None   # equity only, for unrealised P&L
    stop_loss: Optional[float] = None
    target: Optional[float] = None


# ---------------------------------------------------------------------------
# Charges
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChargeBreakdown:
    brokerage: float = 0.0
    transaction_tax: float = 0.0
    exchange_fee: float = 0.0
    regulatory_fee: float = 0.0
    stamp_duty: float = 0.0
    gst: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.brokerage
            + self.transaction_tax
            + self.exchange_fee
            + self.regulatory_fee
            + self.stamp_duty
            + self.gst
        )

    def as_dict(self) -> dict[ChargeKind, float]:
        return {
            ChargeKind.BROKERAGE: self.brokerage,
            ChargeKind.TRANSACTION_TAX: self.transaction_tax,
            ChargeKind.EXCHANGE_FEE: self.exchange_fee,
            ChargeKind.REGULATORY_FEE: self.regulatory_fee,
            ChargeKind.STAMP_DUTY: self.stamp_duty,
            ChargeKind.GST: self.gst,
        }


@dataclass(frozen=True)
class ChargeSet:
    """Canonical per-kind charge totals for one or more legs.

    Build through the ``charges`` module constructors (line items, a computed
    breakdown or a loose mapping); downstream code only ever sees this shape.
    ``counts`` holds how many line items contributed to each kind.
    """

    amounts: tuple[tuple[ChargeKind, float], ...] = ()
    counts: tuple[tuple[ChargeKind, int], ...] = ()

    def amount(self, kind: ChargeKind) -> float:
        return dict(self.amounts).get(kind, 0.0)

    def count(self, kind: ChargeKind) -> int:
        return dict(self.counts).get(kind, 0)

    @property
    def total(self) -> float:
        return sum(amount for _, amount in self.amounts)

    def __add__(self, other: "ChargeSet") -> "ChargeSet":
        amounts = {kind: self.amount(kind) + other.amount(kind) for kind in ChargeKind}
        counts = {kind: self.count(kind) + other.count(kind) for kind in ChargeKind}
        return ChargeSet(
            amounts=tuple(amounts.items()),
            counts=tuple(counts.items()),
        )


# ---------------------------------------------------------------------------
# Derived outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LegOutcome:
    entry_value: float
    exit_value: float
    gross_pnl: float
    charges_total: float
    net_pnl: float
    percentage_return: float
    is_realized: bool


@dataclass(frozen=True)
class TradeOutcome:
    """Consolidated economics of one record (main leg + optional hedge)."""

    trade_id: str
    symbol: str
    instrument: InstrumentType
    entry_date: datetime
    exit_date: Optional[datetime]
    entry_value: float
    exit_value: float
    turnover: float
    gross_pnl: float
    total_charges: float
    net_pnl: float
    percentage_return: float
    charges: ChargeSet = field(default_factory=ChargeSet)
    strategies: tuple[str, ...] = ()
    is_open: bool = False
    risk_reward: Optional[float] = None
    holding_minutes: Optional[int] = None


@dataclass(frozen=True)
class RejectedRecord:
    """Logged every time a record is excluded from aggregation."""

    trade_id: str
    reason: RejectionReason
    detail: str = ""


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PerformanceSummary:
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    total_gross_pnl: float = 0.0
    total_charges: float = 0.0
    total_net_pnl: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    profit_factor: float = 0.0   # 0 means "no losers / not enough data"


@dataclass(frozen=True)
class StrategyPerformance:
    strategy: str
    trades: int
    win_rate: float
    pnl: float
    avg_pnl: float
    best_trade: float
    worst_trade: float


@dataclass(frozen=True)
class InstrumentPerformance:
    instrument: InstrumentType
    trades: int
    pnl: float
    win_rate: float


@dataclass(frozen=True)
class ChargeTotal:
    kind: ChargeKind
    amount: float
    count: int


@dataclass(frozen=True)
class RiskMetrics:
    """``sharpe_ratio`` is a simplified mean/stddev ratio, zero risk-free rate."""

    max_drawdown: float = 0.0
    sharpe_ratio: float = 0.0
    avg_risk_reward: float = 0.0


@dataclass(frozen=True)
class Bucket:
    label: str
    start: Optional[date]          # None for weekday / time-of-day buckets
    pnl: float = 0.0
    trade_count: int = 0
    winning_count: int = 0
    losing_count: int = 0

    @property
    def win_rate(self) -> float:
        return self.winning_count / self.trade_count * 100 if self.trade_count else 0.0

    @property
    def avg_pnl(self) -> float:
        return self.pnl / self.trade_count if self.trade_count else 0.0


@dataclass(frozen=True)
class PeriodAnalysis:
    granularity: Granularity
    most_profitable: Optional[Bucket]
    most_losing: Optional[Bucket]
    total_trades: int
    total_pnl: float


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExplicitRange:
    from_date: date
    to_date: date


@dataclass(frozen=True)
class TimeRange:
    """Resolved, inclusive window.  A None bound means unbounded."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment > self.end:
            return False
        return True


TimeRangeSelection = Union[TimeRangeKeyword, ExplicitRange, str, None]


@dataclass(frozen=True)
class AnalyticsFilter:
    time_range: TimeRangeSelection = TimeRangeKeyword.ALL
    instrument_type: Optional[InstrumentType] = None
    strategy_names: Optional[frozenset[str]] = None


# ---------------------------------------------------------------------------
# AnalyticsReport  (top-level output bag)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnalyticsReport:
    """Everything the dashboard needs after one aggregation run."""

    overview: PerformanceSummary
    open_trades: int
    unrealized_pnl: float
    strategy_performance: tuple[StrategyPerformance, ...]
    instrument_performance: tuple[InstrumentPerformance, ...]
    charges_breakdown: tuple[ChargeTotal, ...]
    daily_pnl: tuple[Bucket, ...]
    weekday_analysis: tuple[Bucket, ...]
    time_of_day: tuple[Bucket, ...]
    period_analysis: PeriodAnalysis
    risk: RiskMetrics
    outcomes: tuple[TradeOutcome, ...] = ()
    rejected: tuple[RejectedRecord, ...] = ()

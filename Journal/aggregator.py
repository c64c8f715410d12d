"""
aggregator.py
-------------
TradeAggregator resolves each TradeRecord into exactly one of:

* TradeOutcome  : the consolidated economics of main leg + optional hedge
* RejectedRecord: the record was malformed and is left out of every total

Resolution order per record (first failure wins):
    1. Main leg sanity      (positive entry price / quantity, entry date, exit price
                             and date, stop loss / target levels)
    2. Hedge leg sanity
    3. Charge normalisation (recorded line items, else the charge calculator)
    4. P&L + combination    (any arithmetic fault or non-finite result rejects)

One bad record never poisons the portfolio: nothing here raises past the
per-record boundary.
"""

from __future__ import annotations

import math
from datetime import datetime
from numbers import Real
from typing import Iterable, Optional, Union

import pytz
import structlog

from charges import ChargeCalculator, normalise_charges
from filters import to_exchange_time
from models import (
    ChargeRates,
    ChargeSet,
    HedgeLeg,
    LegOutcome,
    RejectedRecord,
    RejectionReason,
    TradeOutcome,
    TradeRecord,
)
from pnl import PositionPnLCalculator

logger = structlog.get_logger(__name__)


class _Rejected(Exception):
    def __init__(self, reason: RejectionReason, detail: str) -> None:
        super().__init__(detail)
        self.reason = reason
        self.detail = detail


class TradeAggregator:
    """Stateless record resolver."""

    # ---------------------------------------------------------------------------
    # Public
    # ---------------------------------------------------------------------------

    @staticmethod
    def combine(main: LegOutcome, hedge: Optional[LegOutcome] = None) -> LegOutcome:
        """Merge a hedge leg into its main leg.  Without a hedge, *main* passes through."""
        if hedge is None:
            return main

        gross = main.gross_pnl + hedge.gross_pnl
        charges = main.charges_total + hedge.charges_total
        net = gross - charges
        entry_value = main.entry_value + hedge.entry_value
        return LegOutcome(
            entry_value=entry_value,
            exit_value=main.exit_value + hedge.exit_value,
            gross_pnl=gross,
            charges_total=charges,
            net_pnl=net,
            percentage_return=net / entry_value * 100 if entry_value > 0 else 0.0,
            is_realized=main.is_realized,
        )

    @staticmethod
    def resolve(
        record: TradeRecord,
        rates: ChargeRates = ChargeRates(),
        tz: pytz.BaseTzInfo = pytz.utc,
    ) -> Union[TradeOutcome, RejectedRecord]:
        try:
            TradeAggregator._validate(record)
            main_charges, hedge_charges = TradeAggregator._charge_sets(record, rates)
            outcome = TradeAggregator._outcome(record, main_charges, hedge_charges, tz)
        except _Rejected as rej:
            return TradeAggregator._reject(record, rej.reason, rej.detail)
        except (ArithmeticError, AttributeError, TypeError, ValueError) as exc:
            return TradeAggregator._reject(record, RejectionReason.ARITHMETIC_ERROR, str(exc))

        numbers = (
            outcome.entry_value,
            outcome.exit_value,
            outcome.gross_pnl,
            outcome.total_charges,
            outcome.net_pnl,
            outcome.percentage_return,
        )
        if outcome.risk_reward is not None:
            numbers += (outcome.risk_reward,)
        if not all(math.isfinite(n) for n in numbers):
            return TradeAggregator._reject(
                record, RejectionReason.ARITHMETIC_ERROR, "non-finite value in computed outcome"
            )
        return outcome

    @staticmethod
    def resolve_all(
        records: Iterable[TradeRecord],
        rates: ChargeRates = ChargeRates(),
        tz: pytz.BaseTzInfo = pytz.utc,
    ) -> tuple[list[TradeOutcome], list[RejectedRecord]]:
        outcomes: list[TradeOutcome] = []
        rejected: list[RejectedRecord] = []
        for record in records:
            result = TradeAggregator.resolve(record, rates, tz)
            if isinstance(result, RejectedRecord):
                rejected.append(result)
            else:
                outcomes.append(result)

        logger.debug("trade_records_resolved", outcomes=len(outcomes), rejected=len(rejected))
        return outcomes, rejected

    # ---------------------------------------------------------------------------
    # Validation
    # ---------------------------------------------------------------------------

    @staticmethod
    def _validate(record: TradeRecord) -> None:
        leg = record.leg
        if not _positive(leg.entry_price):
            raise _Rejected(
                RejectionReason.NON_POSITIVE_ENTRY_PRICE, f"entry_price={leg.entry_price!r}"
            )
        if not _positive(leg.quantity):
            raise _Rejected(RejectionReason.NON_POSITIVE_QUANTITY, f"quantity={leg.quantity!r}")
        if not isinstance(leg.entry_date, datetime):
            raise _Rejected(RejectionReason.MISSING_ENTRY_DATE, f"entry_date={leg.entry_date!r}")
        if leg.exit_price is not None and not _non_negative(leg.exit_price):
            raise _Rejected(RejectionReason.INVALID_EXIT_PRICE, f"exit_price={leg.exit_price!r}")
        if leg.exit_price is not None and not isinstance(leg.exit_date, datetime):
            raise _Rejected(RejectionReason.MISSING_EXIT_DATE, f"exit_date={leg.exit_date!r}")
        if record.last_traded_price is not None and not _non_negative(record.last_traded_price):
            raise _Rejected(
                RejectionReason.INVALID_EXIT_PRICE,
                f"last_traded_price={record.last_traded_price!r}",
            )
        for name in ("stop_loss", "target"):
            level = getattr(record, name)
            if level is not None and not _non_negative(level):
                raise _Rejected(RejectionReason.INVALID_PRICE_LEVEL, f"{name}={level!r}")

        hedge = record.hedge
        if hedge is not None:
            if not (_positive(hedge.entry_price) and _positive(hedge.quantity)):
                raise _Rejected(
                    RejectionReason.INVALID_HEDGE,
                    f"entry_price={hedge.entry_price!r} quantity={hedge.quantity!r}",
                )
            if hedge.exit_price is not None and not _non_negative(hedge.exit_price):
                raise _Rejected(RejectionReason.INVALID_HEDGE, f"exit_price={hedge.exit_price!r}")
            if hedge.exit_price is not None and not isinstance(hedge.exit_date, datetime):
                raise _Rejected(
                    RejectionReason.MISSING_EXIT_DATE, f"hedge exit_date={hedge.exit_date!r}"
                )

    # ---------------------------------------------------------------------------
    # Charges
    # ---------------------------------------------------------------------------

    @staticmethod
    def _charge_sets(record: TradeRecord, rates: ChargeRates) -> tuple[ChargeSet, Optional[ChargeSet]]:
        """Recorded line items win; an empty record falls back to the calculator."""
        leg = record.leg
        try:
            if record.charges:
                main = normalise_charges(record.charges)
            else:
                main = normalise_charges(
                    ChargeCalculator.compute_charges(
                        leg.entry_price * leg.quantity,
                        TradeAggregator._closing_value(leg.exit_price, leg.quantity),
                        leg.instrument,
                        leg.position_side,
                        rates,
                    )
                )

            hedge: Optional[ChargeSet] = None
            if record.hedge is not None:
                hedge = TradeAggregator._hedge_charges(record, record.hedge, rates)
        except ValueError as exc:
            raise _Rejected(RejectionReason.INVALID_CHARGE, str(exc)) from exc
        return main, hedge

    @staticmethod
    def _hedge_charges(record: TradeRecord, hedge: HedgeLeg, rates: ChargeRates) -> ChargeSet:
        if record.hedge_charges:
            return normalise_charges(record.hedge_charges)
        return normalise_charges(
            ChargeCalculator.compute_charges(
                hedge.entry_price * hedge.quantity,
                TradeAggregator._closing_value(hedge.exit_price, hedge.quantity),
                hedge.instrument,
                hedge.resolved_side(record.leg.position_side),
                rates,
            )
        )

    @staticmethod
    def _closing_value(exit_price: Optional[float], quantity: float) -> float:
        return exit_price * quantity if exit_price is not None else 0.0

    # ---------------------------------------------------------------------------
    # Outcome
    # ---------------------------------------------------------------------------

    @staticmethod
    def _outcome(
        record: TradeRecord,
        main_charges: ChargeSet,
        hedge_charges: Optional[ChargeSet],
        tz: pytz.BaseTzInfo,
    ) -> TradeOutcome:
        leg = record.leg
        main = PositionPnLCalculator.compute_leg_outcome(
            leg, main_charges.total, record.last_traded_price
        )

        hedge = None
        charges = main_charges
        if record.hedge is not None and hedge_charges is not None:
            hedge = PositionPnLCalculator.compute_hedge_outcome(record.hedge, hedge_charges.total)
            charges = main_charges + hedge_charges

        combined = TradeAggregator.combine(main, hedge)
        entry_date = to_exchange_time(leg.entry_date, tz)
        exit_date = to_exchange_time(leg.exit_date, tz) if leg.exit_date is not None else None

        return TradeOutcome(
            trade_id=record.trade_id,
            symbol=record.symbol,
            instrument=leg.instrument,
            entry_date=entry_date,
            exit_date=exit_date,
            entry_value=combined.entry_value,
            exit_value=combined.exit_value,
            turnover=combined.entry_value + combined.exit_value,
            gross_pnl=combined.gross_pnl,
            total_charges=combined.charges_total,
            net_pnl=combined.net_pnl,
            percentage_return=combined.percentage_return,
            charges=charges,
            strategies=tuple(record.strategies),
            is_open=leg.is_open,
            risk_reward=PositionPnLCalculator.risk_reward(
                leg.entry_price, record.stop_loss, record.target
            ),
            holding_minutes=PositionPnLCalculator.holding_minutes(entry_date, exit_date),
        )

    @staticmethod
    def _reject(record: TradeRecord, reason: RejectionReason, detail: str) -> RejectedRecord:
        logger.warning(
            "trade_record_rejected",
            trade_id=record.trade_id,
            reason=reason.value,
            detail=detail,
        )
        return RejectedRecord(trade_id=record.trade_id, reason=reason, detail=detail)


def _positive(value: object) -> bool:
    return _non_negative(value) and value > 0


def _non_negative(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value) and value >= 0

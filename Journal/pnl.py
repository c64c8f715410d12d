"""
pnl.py
------
PositionPnLCalculator turns one leg plus its charge total into a LegOutcome.

Valuation rules
---------------
* entry value = entry price x quantity
* closed leg  → exit value = exit price x quantity          (realised)
* open equity leg with a last-traded price → LTP stands in   (unrealised)
* any other open leg → exit value 0, gross P&L 0

Main legs are signed by position side (BUY: exit − entry, SELL: entry − exit).
Hedge legs are *unsigned*: their gross is always exit − entry, whatever side
was recorded.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from models import HedgeLeg, InstrumentType, LegOutcome, PositionSide, TradeLeg


class PositionPnLCalculator:
    """Stateless per-leg P&L calculator."""

    @staticmethod
    def compute_leg_outcome(
        leg: TradeLeg,
        charges_total: float,
        last_traded_price: Optional[float] = None,
    ) -> LegOutcome:
        entry_value = leg.entry_price * leg.quantity
        exit_value, is_realized, valued = PositionPnLCalculator._exit_value(
            leg, last_traded_price
        )

        if not valued:
            gross = 0.0
        elif leg.position_side is PositionSide.BUY:
            gross = exit_value - entry_value
        else:
            gross = entry_value - exit_value

        return PositionPnLCalculator._outcome(
            entry_value, exit_value, gross, charges_total, is_realized
        )

    @staticmethod
    def compute_hedge_outcome(hedge: HedgeLeg, charges_total: float) -> LegOutcome:
        """Hedge contribution: exit − entry regardless of the recorded side."""
        entry_value = hedge.entry_price * hedge.quantity
        if hedge.is_open:
            exit_value, gross = 0.0, 0.0
        else:
            exit_value = hedge.exit_price * hedge.quantity
            gross = exit_value - entry_value

        return PositionPnLCalculator._outcome(
            entry_value, exit_value, gross, charges_total, not hedge.is_open
        )

    # ---------------------------------------------------------------------------
    # Trade-level extras
    # ---------------------------------------------------------------------------

    @staticmethod
    def risk_reward(
        entry_price: float,
        stop_loss: Optional[float],
        target: Optional[float],
    ) -> Optional[float]:
        """Reward/risk ratio from planned levels; None when it is undefined."""
        if stop_loss is None or target is None:
            return None
        risk = abs(entry_price - stop_loss)
        reward = abs(target - entry_price)
        if risk == 0:
            return None
        return reward / risk

    @staticmethod
    def holding_minutes(entry_date: datetime, exit_date: Optional[datetime]) -> Optional[int]:
        if exit_date is None:
            return None
        return round((exit_date - entry_date).total_seconds() / 60)

    # ---------------------------------------------------------------------------
    # Private helpers
    # ---------------------------------------------------------------------------

    @staticmethod
    def _exit_value(
        leg: TradeLeg,
        last_traded_price: Optional[float],
    ) -> tuple[float, bool, bool]:
        """Return (exit_value, is_realized, valued)."""
        if not leg.is_open:
            return leg.exit_price * leg.quantity, True, True
        if leg.instrument is InstrumentType.EQUITY and last_traded_price is not None:
            return last_traded_price * leg.quantity, False, True
        return 0.0, False, False

    @staticmethod
    def _outcome(
        entry_value: float,
        exit_value: float,
        gross: float,
        charges_total: float,
        is_realized: bool,
    ) -> LegOutcome:
        net = gross - charges_total
        pct = net / entry_value * 100 if entry_value > 0 else 0.0
        return LegOutcome(
            entry_value=entry_value,
            exit_value=exit_value,
            gross_pnl=gross,
            charges_total=charges_total,
            net_pnl=net,
            percentage_return=pct,
            is_realized=is_realized,
        )

"""
charges.py
----------
ChargeCalculator works out contract-note charges for a single leg, and
``normalise_charges`` folds whatever shape the storage layer hands over
(line-item list, pre-aggregated mapping, computed breakdown) into one
canonical ``ChargeSet``.

Charge schedule (derivatives only)
----------------------------------
* Brokerage      : percent of turnover, or a flat amount per side
* Transaction tax: SELL positions only, on the exit value
* Exchange fee   : fraction of turnover
* Regulatory fee : fraction of turnover
* Stamp duty     : fraction of turnover
* GST            : fraction of *brokerage*, not of turnover

Equity legs carry no charges at all.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Union

from models import (
    ChargeBreakdown,
    ChargeKind,
    ChargeLineItem,
    ChargeRates,
    ChargeSet,
    InstrumentType,
    PositionSide,
)

ChargeInput = Union[ChargeSet, ChargeBreakdown, Mapping, Iterable[ChargeLineItem], None]

# Keys accepted in a pre-aggregated mapping, lower-cased with separators removed.
_KIND_ALIASES = {
    "brokerage": ChargeKind.BROKERAGE,
    "transactiontax": ChargeKind.TRANSACTION_TAX,
    "stt": ChargeKind.TRANSACTION_TAX,
    "exchangefee": ChargeKind.EXCHANGE_FEE,
    "exchange": ChargeKind.EXCHANGE_FEE,
    "regulatoryfee": ChargeKind.REGULATORY_FEE,
    "sebi": ChargeKind.REGULATORY_FEE,
    "stampduty": ChargeKind.STAMP_DUTY,
    "gst": ChargeKind.GST,
}


class ChargeCalculator:
    """Stateless charge calculator."""

    @staticmethod
    def compute_charges(
        entry_value: float,
        exit_value: float,
        instrument: InstrumentType,
        position_side: PositionSide,
        rates: ChargeRates = ChargeRates(),
    ) -> ChargeBreakdown:
        """Charges for one leg, unrounded.

        Negative values are clamped to zero so no component can come out
        negative.  Flat brokerage charges both sides upfront, even on an open
        leg; percentage brokerage follows the turnover actually traded.
        """
        if instrument is InstrumentType.EQUITY:
            return ChargeBreakdown()

        entry_value = max(entry_value, 0.0)
        exit_value = max(exit_value, 0.0)
        turnover = entry_value + exit_value

        if rates.brokerage_type == "flat":
            brokerage = rates.brokerage_value * 2  # one charge per side
        else:
            brokerage = turnover * rates.brokerage_value / 100

        transaction_tax = 0.0
        if position_side is PositionSide.SELL:
            if instrument is InstrumentType.FUTURES:
                transaction_tax = exit_value * rates.transaction_tax_futures
            else:
                transaction_tax = exit_value * rates.transaction_tax_options

        return ChargeBreakdown(
            brokerage=brokerage,
            transaction_tax=transaction_tax,
            exchange_fee=turnover * rates.exchange_fee,
            regulatory_fee=turnover * rates.regulatory_fee,
            stamp_duty=turnover * rates.stamp_duty,
            gst=brokerage * rates.gst,
        )


# ---------------------------------------------------------------------------
# ChargeSet normalisation
# ---------------------------------------------------------------------------


def normalise_charges(raw: ChargeInput) -> ChargeSet:
    """Return the canonical ``ChargeSet`` for any supported charge shape.

    Raises
    ------
    ValueError
        On an unknown charge kind or a negative amount.
    """
    if raw is None:
        return _build({}, {})
    if isinstance(raw, ChargeSet):
        return raw
    if isinstance(raw, ChargeBreakdown):
        return _from_breakdown(raw)
    if isinstance(raw, Mapping):
        return _from_mapping(raw)
    return _from_items(raw)


def _from_items(items: Iterable[ChargeLineItem]) -> ChargeSet:
    amounts: dict[ChargeKind, float] = {}
    counts: dict[ChargeKind, int] = {}
    for item in items:
        _check_amount(item.kind, item.amount)
        amounts[item.kind] = amounts.get(item.kind, 0.0) + item.amount
        counts[item.kind] = counts.get(item.kind, 0) + 1
    return _build(amounts, counts)


def _from_breakdown(breakdown: ChargeBreakdown) -> ChargeSet:
    amounts = breakdown.as_dict()
    counts = {kind: 1 for kind, amount in amounts.items() if amount > 0}
    return _build(amounts, counts)


def _from_mapping(mapping: Mapping[Any, float]) -> ChargeSet:
    amounts: dict[ChargeKind, float] = {}
    counts: dict[ChargeKind, int] = {}
    for key, amount in mapping.items():
        kind = _resolve_kind(key)
        _check_amount(kind, amount)
        amounts[kind] = amounts.get(kind, 0.0) + amount
        if amount > 0:
            counts[kind] = counts.get(kind, 0) + 1
    return _build(amounts, counts)


def _resolve_kind(key: Any) -> ChargeKind:
    if isinstance(key, ChargeKind):
        return key
    normalised = "".join(ch for ch in str(key).lower() if ch.isalnum())
    if normalised not in _KIND_ALIASES:
        raise ValueError(f"unknown charge kind {key!r}")
    return _KIND_ALIASES[normalised]


def _check_amount(kind: ChargeKind, amount: float) -> None:
    if amount < 0:
        raise ValueError(f"{kind.value} amount must be >= 0, got {amount}")


def _build(amounts: dict[ChargeKind, float], counts: dict[ChargeKind, int]) -> ChargeSet:
    return ChargeSet(
        amounts=tuple((kind, float(amounts.get(kind, 0.0))) for kind in ChargeKind),
        counts=tuple((kind, counts.get(kind, 0)) for kind in ChargeKind),
    )

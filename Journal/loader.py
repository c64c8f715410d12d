"""
loader.py
---------
DataLoader reads a journal CSV export into TradeRecords.

Responsibilities
----------------
1. Parse the CSV into a DataFrame (every cell read as text).
2. Normalise column names case-insensitively to their canonical form.
3. Validate that the required columns are present and the instrument /
   position values are known.
4. Convert numbers and dates cell by cell.

Cell policy
-----------
A blank cell means "not recorded" (None).  A non-blank cell that does not
parse as a number becomes NaN and is left in the record: the aggregator will
reject that record on its own instead of failing the whole file.
"""

from __future__ import annotations

import math
from datetime import datetime
from io import StringIO
from typing import Optional, Union

import pandas as pd

from models import HedgeLeg, InstrumentType, PositionSide, TradeLeg, TradeRecord

REQUIRED_TRADE_COLUMNS = {
    "Trade ID", "Symbol", "Instrument", "Position", "Entry Date", "Entry Price", "Quantity",
}
OPTIONAL_TRADE_COLUMNS = {
    "Exit Date", "Exit Price", "LTP", "Stop Loss", "Target", "Strategies",
    "Hedge Position", "Hedge Entry Date", "Hedge Entry Price", "Hedge Exit Date",
    "Hedge Exit Price", "Hedge Quantity",
}
CHARGE_COLUMNS = {"Brokerage", "STT", "Exchange", "SEBI", "Stamp Duty", "GST"}
HEDGE_CHARGE_PREFIX = "Hedge "

STRATEGY_SEPARATOR = ";"


class DataLoader:
    """Stateless CSV loader + validator."""

    @staticmethod
    def load_trades(raw: Union[str, StringIO]) -> list[TradeRecord]:
        """Read and validate a trade journal CSV.

        Parameters
        ----------
        raw : str or file-like
            The CSV content.

        Returns
        -------
        list[TradeRecord]
            One record per row, in file order.

        Raises
        ------
        ValueError
            If required columns are missing, or an Instrument / Position value
            is not recognised.
        """
        df = pd.read_csv(
            raw if isinstance(raw, StringIO) else StringIO(raw),
            dtype=str,
            keep_default_na=False,
        )

        # ------------------------------------------------------------------
        # Case-insensitive column normalisation
        # ------------------------------------------------------------------
        known = REQUIRED_TRADE_COLUMNS | OPTIONAL_TRADE_COLUMNS | CHARGE_COLUMNS
        known |= {HEDGE_CHARGE_PREFIX + c for c in CHARGE_COLUMNS}
        canonical = {name.lower(): name for name in known}
        df = df.rename(
            columns={
                col: canonical[col.strip().lower()]
                for col in df.columns
                if col.strip().lower() in canonical
            }
        )

        missing = REQUIRED_TRADE_COLUMNS - set(df.columns)
        if missing:
            raise ValueError(
                f"Trade CSV is missing required columns: {sorted(missing)}. "
                f"Found: {sorted(df.columns)}"
            )

        # ------------------------------------------------------------------
        # Enum validation (whole file, so the error lists every bad row)
        # ------------------------------------------------------------------
        DataLoader._check_enum(df, "Instrument", InstrumentType)
        DataLoader._check_enum(df, "Position", PositionSide)
        if "Hedge Position" in df.columns:
            DataLoader._check_enum(df, "Hedge Position", PositionSide, allow_blank=True)

        return [DataLoader._record(row) for _, row in df.iterrows()]

    # ---------------------------------------------------------------------------
    # Private helpers
    # ---------------------------------------------------------------------------

    @staticmethod
    def _record(row: pd.Series) -> TradeRecord:
        instrument = InstrumentType(row["Instrument"].strip().upper())
        side = PositionSide(row["Position"].strip().upper())

        leg = TradeLeg(
            instrument=instrument,
            position_side=side,
            entry_price=DataLoader._number(row, "Entry Price"),
            quantity=DataLoader._number(row, "Quantity"),
            entry_date=DataLoader._date(row, "Entry Date"),
            exit_price=DataLoader._number(row, "Exit Price"),
            exit_date=DataLoader._date(row, "Exit Date"),
        )

        hedge = None
        if DataLoader._number(row, "Hedge Entry Price") is not None:
            hedge_side = _cell(row, "Hedge Position")
            hedge = HedgeLeg(
                instrument=instrument,
                entry_price=DataLoader._number(row, "Hedge Entry Price"),
                quantity=DataLoader._number(row, "Hedge Quantity"),
                entry_date=DataLoader._date(row, "Hedge Entry Date", default=leg.entry_date),
                exit_price=DataLoader._number(row, "Hedge Exit Price"),
                exit_date=DataLoader._date(row, "Hedge Exit Date", default=leg.exit_date),
                position_side=PositionSide(hedge_side.upper()) if hedge_side else None,
            )

        strategies = tuple(
            s.strip() for s in _cell(row, "Strategies").split(STRATEGY_SEPARATOR) if s.strip()
        )

        return TradeRecord(
            trade_id=_cell(row, "Trade ID"),
            symbol=_cell(row, "Symbol"),
            leg=leg,
            charges=DataLoader._charges(row, ""),
            hedge=hedge,
            hedge_charges=DataLoader._charges(row, HEDGE_CHARGE_PREFIX) if hedge else (),
            strategies=strategies,
            last_traded_price=DataLoader._number(row, "LTP"),
            stop_loss=DataLoader._number(row, "Stop Loss"),
            target=DataLoader._number(row, "Target"),
        )

    @staticmethod
    def _charges(row: pd.Series, prefix: str) -> dict[str, float]:
        """Recorded charge cells as a {kind: amount} mapping (empty if none recorded)."""
        recorded = {}
        for name in sorted(CHARGE_COLUMNS):
            amount = DataLoader._number(row, prefix + name)
            if amount is not None:
                recorded[name] = amount
        return recorded

    @staticmethod
    def _number(row: pd.Series, column: str) -> Optional[float]:
        text = _cell(row, column).replace(",", "")
        if not text:
            return None
        value = pd.to_numeric(text, errors="coerce")
        return math.nan if pd.isna(value) else float(value)

    @staticmethod
    def _date(
        row: pd.Series, column: str, default: Optional[datetime] = None
    ) -> Optional[datetime]:
        """Blank cell → *default*; unparseable text → None (rejected downstream)."""
        text = _cell(row, column)
        if not text:
            return default
        ts = pd.to_datetime(text, errors="coerce")
        return None if pd.isna(ts) else ts.to_pydatetime()

    @staticmethod
    def _check_enum(df: pd.DataFrame, column: str, enum_cls, allow_blank: bool = False) -> None:
        allowed = {member.value for member in enum_cls}
        values = df[column].str.strip().str.upper()
        bad = values[~values.isin(allowed) & ~(allow_blank & (values == ""))]
        if not bad.empty:
            rows = [int(i) + 2 for i in bad.index]  # 1-based, after the header
            raise ValueError(
                f"Unknown {column} values {sorted(set(bad))} on rows {rows}. "
                f"Expected one of {sorted(allowed)}"
            )


def _cell(row: pd.Series, column: str) -> str:
    value = row.get(column, "")
    return "" if value is None else str(value).strip()

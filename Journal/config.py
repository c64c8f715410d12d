"""
config.py
---------
Loads ``default_settings.yaml`` (or a caller-supplied file) into the frozen
ChargeRates / EngineSettings objects.  Validation lives in their
``__post_init__``, so a bad file fails here, at load time.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import yaml

from models import ChargeRates, EngineSettings, Granularity

DEFAULTS_PATH = Path(__file__).resolve().parent / "default_settings.yaml"


def _load_yaml(path: Union[str, Path]) -> dict:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def rates_from_dict(raw: dict) -> ChargeRates:
    brokerage = raw.get("brokerage", {})
    tax = raw.get("transaction_tax", {})
    defaults = ChargeRates()
    return ChargeRates(
        brokerage_type=str(brokerage.get("type", defaults.brokerage_type)),
        brokerage_value=float(brokerage.get("value", defaults.brokerage_value)),
        transaction_tax_futures=float(tax.get("futures", defaults.transaction_tax_futures)),
        transaction_tax_options=float(tax.get("options", defaults.transaction_tax_options)),
        exchange_fee=float(raw.get("exchange_fee", defaults.exchange_fee)),
        regulatory_fee=float(raw.get("regulatory_fee", defaults.regulatory_fee)),
        stamp_duty=float(raw.get("stamp_duty", defaults.stamp_duty)),
        gst=float(raw.get("gst", defaults.gst)),
    )


def settings_from_dict(raw: dict) -> EngineSettings:
    defaults = EngineSettings()
    granularity = raw.get("period_granularity", defaults.period_granularity.value)
    try:
        period = Granularity(granularity)
    except ValueError as exc:
        raise ValueError(f"unknown period_granularity {granularity!r}") from exc
    return EngineSettings(
        timezone=str(raw.get("timezone", defaults.timezone)),
        period_granularity=period,
    )


def load_settings(path: Optional[Union[str, Path]] = None) -> tuple[ChargeRates, EngineSettings]:
    """Read a settings file; missing keys take the dataclass defaults.

    Raises
    ------
    ValueError
        If a rate is negative, the brokerage type or granularity is unknown,
        or the timezone is not a tz database name.
    """
    raw = _load_yaml(path or DEFAULTS_PATH)
    return rates_from_dict(raw.get("charges", {})), settings_from_dict(raw.get("engine", {}))

"""
Calendar-month helpers.

Every month in the package is a ``pd.Timestamp`` pinned to the first day of
the month; December is the anchor month for relative-importance weights.
"""
from __future__ import annotations

from typing import Any, Iterable

import pandas as pd

ANCHOR_MONTH = 12


def to_month(value: Any) -> pd.Timestamp:
    """Normalize anything ``pd.Timestamp`` accepts to the first of its month."""
    ts = pd.Timestamp(value)
    return pd.Timestamp(year=ts.year, month=ts.month, day=1)


def to_months(values: Iterable[Any]) -> list[pd.Timestamp]:
    return [to_month(v) for v in values]


def is_anchor(month: pd.Timestamp) -> bool:
    return month.month == ANCHOR_MONTH


def anchor_month(year: int) -> pd.Timestamp:
    return pd.Timestamp(year=int(year), month=ANCHOR_MONTH, day=1)


def base_month(month: pd.Timestamp) -> pd.Timestamp:
    """Most recent anchor month strictly before ``month``."""
    return anchor_month(month.year - 1)


def anchor_year(month: pd.Timestamp) -> int:
    """Year whose anchor weights apply to ``month``."""
    return month.year if is_anchor(month) else month.year - 1


def month_range(start: Any, end: Any) -> list[pd.Timestamp]:
    return list(pd.date_range(to_month(start), to_month(end), freq="MS"))


def format_month(month: pd.Timestamp | None) -> str:
    if month is None:
        return "N/A"
    return month.strftime("%Y-%m")

"""
Coverage checks on propagated weights.

Coverage for a month is the sum of the category weights (excluding "All
items"). With a complete, non-overlapping category set it sits near 100; the
relative-importance tables have gaps in some years, so coverage is treated as
approximate: months outside the tolerance are reported and logged, not raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

import numpy as np
import pandas as pd

from cpiweights.categories import ALL_ITEMS
from cpiweights.utils.dates import anchor_year, base_month, is_anchor

logger = logging.getLogger(__name__)

TARGET_COVERAGE = 100.0


@dataclass(frozen=True)
class CoverageReport:
    table: pd.DataFrame  # date, coverage, n_categories, gap, within_tolerance
    tolerance: float

    @property
    def ok(self) -> bool:
        return bool(self.table.empty or self.table["within_tolerance"].all())

    @property
    def flagged(self) -> pd.DataFrame:
        return self.table[~self.table["within_tolerance"]].reset_index(drop=True)

    @property
    def worst_gap(self) -> float | None:
        if self.table.empty:
            return None
        return float(self.table["gap"].abs().max())


def coverage_by_month(weights: pd.DataFrame, categories: Iterable[str] | None = None) -> pd.DataFrame:
    """Sum of category weights per month, optionally restricted to ``categories``."""
    cols = ["date", "coverage", "n_categories"]
    if weights is None or weights.empty:
        return pd.DataFrame(columns=cols)
    df = weights[weights["category"] != ALL_ITEMS]
    if categories is not None:
        keep = set(categories) - {ALL_ITEMS}
        df = df[df["category"].isin(keep)]
    if df.empty:
        return pd.DataFrame(columns=cols)
    out = (
        df.groupby("date")
        .agg(coverage=("weight", "sum"), n_categories=("category", "nunique"))
        .reset_index()
        .sort_values("date")
        .reset_index(drop=True)
    )
    return out[cols]


def check_coverage(
    weights: pd.DataFrame,
    *,
    tolerance: float = 1.0,
    categories: Iterable[str] | None = None,
) -> CoverageReport:
    table = coverage_by_month(weights, categories=categories)
    if table.empty:
        table = table.assign(gap=pd.Series(dtype=float), within_tolerance=pd.Series(dtype=bool))
        return CoverageReport(table=table, tolerance=float(tolerance))

    table["gap"] = table["coverage"] - TARGET_COVERAGE
    table["within_tolerance"] = table["gap"].abs() <= float(tolerance)

    bad = table[~table["within_tolerance"]]
    for row in bad.itertuples(index=False):
        logger.warning(
            "Coverage %.3f at %s is %.3f points from %.0f (%d categories)",
            row.coverage,
            f"{row.date:%Y-%m}",
            row.gap,
            TARGET_COVERAGE,
            row.n_categories,
        )
    return CoverageReport(table=table, tolerance=float(tolerance))


def consistency_error(
    weights: pd.DataFrame,
    anchor_weights: pd.DataFrame,
    price_index: pd.DataFrame,
) -> float:
    """
    Largest relative error when undoing the renormalization.

    For every non-anchor cell, w[c, m] * growth_all / growth_c must give back
    the December anchor weight it was propagated from. Returns 0.0 when there
    is nothing to check.
    """
    if weights is None or weights.empty:
        return 0.0

    px = price_index[["category", "date", "value"]].copy()
    px["date"] = pd.to_datetime(px["date"]).dt.to_period("M").dt.to_timestamp()
    px = px.drop_duplicates(subset=["category", "date"], keep="last").set_index(["category", "date"])["value"]
    anchors = anchor_weights.drop_duplicates(subset=["category", "year"], keep="last").set_index(
        ["category", "year"]
    )["weight"]

    errors: list[float] = []
    for c, m, w in weights[["category", "date", "weight"]].itertuples(index=False, name=None):
        m = pd.Timestamp(m)
        if c == ALL_ITEMS or is_anchor(m):
            continue
        b = base_month(m)
        growth_c = px[(c, m)] / px[(c, b)]
        growth_all = px[(ALL_ITEMS, m)] / px[(ALL_ITEMS, b)]
        expected = anchors[(c, anchor_year(m))]
        back = w * growth_all / growth_c
        denom = abs(expected) if expected else 1.0
        errors.append(abs(back - expected) / denom)

    return float(np.max(errors)) if errors else 0.0

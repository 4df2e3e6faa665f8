"""
Rebased indices, group roll-ups, and contributions to headline inflation.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

import pandas as pd

from cpiweights.categories import ALL_ITEMS, GROUP_MAP
from cpiweights.utils.dates import to_month
from cpiweights.weights.propagate import ALL_ITEMS_WEIGHT

logger = logging.getLogger(__name__)


def _monthly(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    out["date"] = pd.to_datetime(out["date"]).dt.to_period("M").dt.to_timestamp()
    return out


def rebase(price_index: pd.DataFrame, base_month: Any) -> pd.DataFrame:
    """
    Rescale each category's index so that ``base_month`` = 100.

    Returns a long (category, date, value) frame. Categories without a
    usable observation at the base month are dropped.
    """
    cols = ["category", "date", "value"]
    if price_index is None or price_index.empty:
        return pd.DataFrame(columns=cols)

    base = to_month(base_month)
    df = _monthly(price_index[cols])
    base_vals = df[df["date"] == base].drop_duplicates("category", keep="last").set_index("category")["value"]
    base_vals = base_vals[base_vals > 0]

    dropped = sorted(set(df["category"]) - set(base_vals.index))
    if dropped:
        logger.warning("Rebase to %s: no base observation for %s", f"{base:%Y-%m}", ", ".join(dropped))

    df = df[df["category"].isin(base_vals.index)].copy()
    df["value"] = df["value"] / df["category"].map(base_vals) * 100.0
    return df.sort_values(["category", "date"]).reset_index(drop=True)


def group_weights(weights: pd.DataFrame, group_map: Mapping[str, str] | None = None) -> pd.DataFrame:
    """Sum category weights into groups per month -> (group, date, weight)."""
    cols = ["group", "date", "weight"]
    if weights is None or weights.empty:
        return pd.DataFrame(columns=cols)
    gm = dict(group_map if group_map is not None else GROUP_MAP)
    df = weights[weights["category"] != ALL_ITEMS].copy()
    df["group"] = df["category"].map(gm)

    unmapped = sorted(df.loc[df["group"].isna(), "category"].unique())
    if unmapped:
        logger.warning("No group for %s; excluded from group weights", ", ".join(unmapped))

    df = df.dropna(subset=["group"])
    out = df.groupby(["group", "date"], as_index=False)["weight"].sum()
    return out[cols].sort_values(["date", "group"]).reset_index(drop=True)


def contributions(weights: pd.DataFrame, price_index: pd.DataFrame, periods: int = 12) -> pd.DataFrame:
    """
    Contribution of each category to the headline change over ``periods`` months.

    contribution[c, m] = w[c, m - periods] / 100 * (P[c, m] / P[c, m - periods] - 1) * 100

    i.e. percentage points of the "All items" change, using the weight in
    effect at the start of the window. Returns (category, date, contribution).
    """
    cols = ["category", "date", "contribution"]
    if weights is None or weights.empty or price_index is None or price_index.empty:
        return pd.DataFrame(columns=cols)

    px = _monthly(price_index[["category", "date", "value"]]).drop_duplicates(["category", "date"], keep="last")
    px = px.pivot(index="date", columns="category", values="value").sort_index()
    px = px.asfreq("MS")
    change = px / px.shift(int(periods)) - 1.0

    w = weights[weights["category"] != ALL_ITEMS].pivot(index="date", columns="category", values="weight")
    w = w.sort_index().reindex(px.index)
    w_start = w.shift(int(periods))

    common = [c for c in w_start.columns if c in change.columns]
    contrib = (w_start[common] / ALL_ITEMS_WEIGHT) * change[common] * 100.0

    out = contrib.stack().reset_index()
    out.columns = ["date", "category", "contribution"]
    out = out[cols]
    return out.dropna(subset=["contribution"]).sort_values(["date", "category"]).reset_index(drop=True)


def group_contributions(contrib: pd.DataFrame, group_map: Mapping[str, str] | None = None) -> pd.DataFrame:
    """Sum category contributions by group -> (group, date, contribution)."""
    cols = ["group", "date", "contribution"]
    if contrib is None or contrib.empty:
        return pd.DataFrame(columns=cols)
    gm = dict(group_map if group_map is not None else GROUP_MAP)
    df = contrib.copy()
    df["group"] = df["category"].map(gm)
    df = df.dropna(subset=["group"])
    out = df.groupby(["group", "date"], as_index=False)["contribution"].sum()
    return out[cols].sort_values(["date", "group"]).reset_index(drop=True)


def headline_change(price_index: pd.DataFrame, periods: int = 12) -> pd.DataFrame:
    """Actual "All items" % change over ``periods`` months -> (date, change)."""
    cols = ["date", "change"]
    if price_index is None or price_index.empty:
        return pd.DataFrame(columns=cols)
    s = _monthly(price_index[price_index["category"] == ALL_ITEMS])
    s = s.drop_duplicates("date", keep="last").set_index("date")["value"].sort_index().asfreq("MS")
    chg = ((s / s.shift(int(periods)) - 1.0) * 100.0).dropna()
    out = chg.rename("change").reset_index()
    out.columns = cols
    return out

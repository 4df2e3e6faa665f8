"""
Monthly category weights from December relative-importance anchors.

BLS publishes relative importance (weights summing to 100 for "All items")
once a year, as of December. Weights for the months in between drift with
relative prices. For a month m in year Y:

    growth_c   = P[c, m] / P[c, Dec Y-1]
    growth_all = P[All items, m] / P[All items, Dec Y-1]
    w[c, m]    = growth_c * anchor[c, Y-1] / growth_all

December months take the published anchor directly, and "All items" is 100
everywhere. Each month only reads the fixed inputs, so the result is built as
one independent frame per month and concatenated at the end.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Sequence

import pandas as pd

from cpiweights.categories import ALL_ITEMS
from cpiweights.utils.dates import anchor_year, base_month, is_anchor, month_range, to_month, to_months
from cpiweights.weights.errors import (
    MissingAnchorWeight,
    MissingObservation,
    WeightPropagationError,
)
from cpiweights.weights.models import WEIGHT_COLUMNS, CellFailure, WeightResult

logger = logging.getLogger(__name__)

ALL_ITEMS_WEIGHT = 100.0


# ── Lookup tables ─────────────────────────────────────────────────────

def _price_lookup(price_index: pd.DataFrame) -> dict[tuple[str, pd.Timestamp], float]:
    """{(category, month): value} from a long (category, date, value) frame."""
    if price_index is None or price_index.empty:
        return {}
    df = price_index[["category", "date", "value"]].copy()
    df["date"] = pd.to_datetime(df["date"]).dt.to_period("M").dt.to_timestamp()
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    df = df.drop_duplicates(subset=["category", "date"], keep="last")
    return {(c, d): float(v) for c, d, v in df.itertuples(index=False, name=None)}


def _anchor_lookup(anchor_weights: pd.DataFrame) -> dict[tuple[str, int], float]:
    """{(category, year): weight} from a long (category, year, weight) frame."""
    if anchor_weights is None or anchor_weights.empty:
        return {}
    df = anchor_weights[["category", "year", "weight"]].copy()
    df["year"] = pd.to_numeric(df["year"], errors="coerce").astype("Int64")
    df["weight"] = pd.to_numeric(df["weight"], errors="coerce")
    df = df.dropna(subset=["year"]).drop_duplicates(subset=["category", "year"], keep="last")
    return {(c, int(y)): float(w) for c, y, w in df.itertuples(index=False, name=None)}


def _usable(value: float | None) -> bool:
    return value is not None and not math.isnan(value) and value > 0


def _observation(prices: dict, category: str, month: pd.Timestamp, *, role: str, target: pd.Timestamp) -> float:
    v = prices.get((category, month))
    if not _usable(v):
        raise MissingObservation(category, month, role=role, target=target)
    return v  # type: ignore[return-value]


def _anchor(anchors: dict, category: str, year: int, *, target: pd.Timestamp) -> float:
    w = anchors.get((category, year))
    if w is None or math.isnan(w):
        raise MissingAnchorWeight(category, year, target=target)
    return w


# ── Per-month computation ─────────────────────────────────────────────

def _compute_month(
    categories: Sequence[str],
    anchors: dict[tuple[str, int], float],
    prices: dict[tuple[str, pd.Timestamp], float],
    month: pd.Timestamp,
    *,
    strict: bool,
    include_all_items: bool,
) -> tuple[pd.DataFrame, list[CellFailure]]:
    rows: list[dict[str, Any]] = []
    failures: list[CellFailure] = []

    def _fail(err: WeightPropagationError) -> None:
        if strict:
            raise err
        logger.warning("Skipping %s @ %s: %s", err.category, f"{month:%Y-%m}", err)
        failures.append(CellFailure.from_error(err))

    if include_all_items:
        rows.append({"category": ALL_ITEMS, "date": month, "weight": ALL_ITEMS_WEIGHT})

    if is_anchor(month):
        for c in categories:
            try:
                w = _anchor(anchors, c, month.year, target=month)
            except WeightPropagationError as e:
                _fail(e)
                continue
            rows.append({"category": c, "date": month, "weight": w})
        return pd.DataFrame(rows, columns=WEIGHT_COLUMNS), failures

    base = base_month(month)
    year = anchor_year(month)

    # Headline growth is shared by every category; without it the month is lost.
    try:
        all_now = _observation(prices, ALL_ITEMS, month, role="target", target=month)
        all_base = _observation(prices, ALL_ITEMS, base, role="base", target=month)
    except MissingObservation as e:
        if strict:
            raise
        logger.warning("No headline growth for %s (%s); skipping %d categories", f"{month:%Y-%m}", e, len(categories))
        for c in categories:
            failures.append(
                CellFailure(
                    category=c,
                    month=month,
                    kind=e.kind,
                    role=e.role,
                    missing=f"{e.month:%Y-%m}",
                    message=f"{e} (headline growth unavailable)",
                )
            )
        return pd.DataFrame(rows, columns=WEIGHT_COLUMNS), failures

    growth_all = all_now / all_base

    for c in categories:
        try:
            anchor_w = _anchor(anchors, c, year, target=month)
            now = _observation(prices, c, month, role="target", target=month)
            then = _observation(prices, c, base, role="base", target=month)
        except WeightPropagationError as e:
            _fail(e)
            continue
        raw = (now / then) * anchor_w
        rows.append({"category": c, "date": month, "weight": raw / growth_all})

    return pd.DataFrame(rows, columns=WEIGHT_COLUMNS), failures


def compute_month(
    categories: Iterable[str],
    anchor_weights: pd.DataFrame,
    price_index: pd.DataFrame,
    month: Any,
    *,
    strict: bool = False,
    include_all_items: bool = True,
) -> tuple[pd.DataFrame, list[CellFailure]]:
    """Weights for a single month. Returns (frame, skipped cells)."""
    cats = _category_list(categories)
    return _compute_month(
        cats,
        _anchor_lookup(anchor_weights),
        _price_lookup(price_index),
        to_month(month),
        strict=strict,
        include_all_items=include_all_items,
    )


def _category_list(categories: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for c in categories:
        if c == ALL_ITEMS or c in seen:
            continue
        seen.append(c)
    return sorted(seen)


# ── Full run ──────────────────────────────────────────────────────────

def compute_weights(
    categories: Iterable[str],
    anchor_weights: pd.DataFrame,
    price_index: pd.DataFrame,
    target_months: Iterable[Any],
    *,
    strict: bool = False,
    include_all_items: bool = True,
) -> WeightResult:
    """
    Compute a weight for every category in every target month.

    Args:
        categories: Category names. "All items" is handled separately and
            always emitted with weight 100 (unless include_all_items=False).
        anchor_weights: Long frame (category, year, weight) of December
            relative importance.
        price_index: Long frame (category, date, value) of monthly indices.
        target_months: Months to compute; duplicates are ignored.
        strict: Raise the first MissingObservation / MissingAnchorWeight
            instead of skipping the cell and recording it.

    Returns:
        WeightResult with the weights frame and the skipped cells.
    """
    cats = _category_list(categories)
    anchors = _anchor_lookup(anchor_weights)
    prices = _price_lookup(price_index)
    months = sorted(set(to_months(target_months)))

    frames: list[pd.DataFrame] = []
    failures: list[CellFailure] = []
    for m in months:
        df, failed = _compute_month(
            cats, anchors, prices, m, strict=strict, include_all_items=include_all_items
        )
        frames.append(df)
        failures.extend(failed)

    frames = [f for f in frames if not f.empty]
    if frames:
        weights = pd.concat(frames, ignore_index=True)
    else:
        weights = pd.DataFrame(columns=WEIGHT_COLUMNS)
    weights["date"] = pd.to_datetime(weights["date"])
    weights["weight"] = weights["weight"].astype(float)
    weights = weights.sort_values(["date", "category"]).reset_index(drop=True)

    if failures:
        logger.warning(
            "Weight propagation skipped %d cell(s) across %d month(s)",
            len(failures),
            len({f.month for f in failures}),
        )
    return WeightResult(weights=weights, failures=tuple(failures))


def default_target_months(anchor_weights: pd.DataFrame, price_index: pd.DataFrame) -> list[pd.Timestamp]:
    """
    Every month from the first anchor December through the last month that
    has both a price observation and a preceding anchor year.
    """
    if anchor_weights is None or anchor_weights.empty or price_index is None or price_index.empty:
        return []
    years = sorted(int(y) for y in pd.to_numeric(anchor_weights["year"], errors="coerce").dropna().unique())
    first = pd.Timestamp(year=years[0], month=12, day=1)
    last_obs = to_month(pd.to_datetime(price_index["date"]).max())
    last_allowed = pd.Timestamp(year=years[-1] + 1, month=11, day=1)
    end = min(last_obs, last_allowed)
    if end < first:
        return []
    return month_range(first, end)

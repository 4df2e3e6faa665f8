"""
December relative-importance tables -> anchor weights.

BLS publishes one table per year. The layouts drift between years: footnote
markers get glued onto labels ("Shelter(1)"), leader dots pad the label
column, and the weight column header changes ("Relative importance Dec. 2019",
"U.S. City Average CPI-U"). The parser here normalizes labels, picks the
weight column, and maps rows onto the declared category names.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Mapping

import pandas as pd

from cpiweights.categories import ALL_ITEMS, CATEGORIES, canonical_name

logger = logging.getLogger(__name__)

ANCHOR_COLUMNS = ["category", "year", "weight"]

_FOOTNOTE_RE = re.compile(r"\s*\(\s*\d+\s*\)")
_LEADER_RE = re.compile(r"[\s.…]+$")
_WEIGHT_HEADER_RE = re.compile(r"(relative\s+importance|cpi-u|weight)", re.I)


def clean_label(label) -> str:
    """Strip footnote markers, leader dots, and stray whitespace from a table label."""
    if label is None or (isinstance(label, float) and pd.isna(label)):
        return ""
    s = str(label).replace("\u00a0", " ").replace("\u2019", "'")
    s = _FOOTNOTE_RE.sub("", s)
    s = _LEADER_RE.sub("", s)
    return " ".join(s.split())


def _pick_weight_column(frame: pd.DataFrame, year: int, label_col: str) -> str:
    candidates = [c for c in frame.columns if c != label_col]
    by_year = [c for c in candidates if _WEIGHT_HEADER_RE.search(str(c)) and str(year) in str(c)]
    if by_year:
        return by_year[0]
    by_name = [c for c in candidates if _WEIGHT_HEADER_RE.search(str(c))]
    if by_name:
        return by_name[0]
    numeric = [c for c in candidates if pd.to_numeric(frame[c], errors="coerce").notna().any()]
    if numeric:
        return numeric[0]
    raise ValueError(f"No relative-importance column found for {year}: {list(frame.columns)}")


def parse_relative_importance(
    frame: pd.DataFrame,
    year: int,
    *,
    label_col: str | None = None,
    weight_col: str | None = None,
    extra_categories: Iterable[str] | None = None,
) -> pd.DataFrame:
    """
    Turn one year's raw table into anchor rows (category, year, weight).

    Rows whose labels do not map to a known category are dropped. When a label
    appears more than once (the tables repeat some items under special
    aggregates) the first occurrence wins. ``extra_categories`` are accepted
    verbatim (after label cleaning) on top of the declared category table.
    """
    if frame is None or frame.empty:
        return pd.DataFrame(columns=ANCHOR_COLUMNS)

    label_col = label_col or frame.columns[0]
    weight_col = weight_col or _pick_weight_column(frame, year, label_col)

    df = pd.DataFrame({
        "label": frame[label_col].map(clean_label),
        "weight": pd.to_numeric(frame[weight_col], errors="coerce"),
    })
    df = df[(df["label"] != "") & df["weight"].notna()].copy()
    extra = set(extra_categories or ())
    df["category"] = df["label"].map(lambda s: canonical_name(s) or (s if s in extra else None))

    unknown = df[df["category"].isna()]
    if not unknown.empty:
        logger.debug("%d: ignoring %d unmapped labels", year, len(unknown))

    df = df.dropna(subset=["category"]).drop_duplicates(subset=["category"], keep="first")
    df["year"] = int(year)
    return df[ANCHOR_COLUMNS].reset_index(drop=True)


def read_relative_importance(path: str | Path, year: int, **kwargs) -> pd.DataFrame:
    """Read one year's table from CSV or Excel and parse it."""
    path = Path(path)
    sheet = kwargs.pop("sheet_name", 0)
    header = kwargs.pop("header", 0)
    if path.suffix.lower() in {".xlsx", ".xlsm", ".xls"}:
        raw = pd.read_excel(path, sheet_name=sheet, header=header, engine="openpyxl")
    else:
        raw = pd.read_csv(path, header=header)
    raw.columns = [str(c).strip() for c in raw.columns]
    return parse_relative_importance(raw, year, **kwargs)


def _finalize(anchors: pd.DataFrame, expected: Iterable[str] | None = None) -> pd.DataFrame:
    """Force "All items" = 100 per year and log per-year gaps."""
    if anchors.empty:
        return pd.DataFrame(columns=ANCHOR_COLUMNS)
    anchors = anchors[anchors["category"] != ALL_ITEMS]
    years = sorted(int(y) for y in anchors["year"].unique())
    headline = pd.DataFrame({"category": ALL_ITEMS, "year": years, "weight": 100.0})
    out = pd.concat([headline, anchors], ignore_index=True)
    out["year"] = out["year"].astype(int)
    out["weight"] = out["weight"].astype(float)
    out = out.drop_duplicates(subset=["category", "year"], keep="last")

    names = set(expected) if expected is not None else {c.name for c in CATEGORIES}
    names.discard(ALL_ITEMS)
    for y in years:
        have = set(out.loc[out["year"] == y, "category"])
        gap = sorted(names - have)
        if gap:
            logger.warning("Anchor weights for December %d missing: %s", y, ", ".join(gap))

    return out.sort_values(["year", "category"]).reset_index(drop=True)


def load_anchor_weights(
    paths: Mapping[int, str | Path],
    *,
    expected: Iterable[str] | None = None,
    **kwargs,
) -> pd.DataFrame:
    """{year: file} -> combined anchor table for all years."""
    frames = [read_relative_importance(p, int(y), **kwargs) for y, p in sorted(paths.items())]
    frames = [f for f in frames if not f.empty]
    if not frames:
        return pd.DataFrame(columns=ANCHOR_COLUMNS)
    return _finalize(pd.concat(frames, ignore_index=True), expected=expected)


def anchor_weights_from_records(records, *, expected: Iterable[str] | None = None) -> pd.DataFrame:
    """
    Build an anchor table from {year: {category: weight}} or an iterable of
    (category, year, weight) tuples.
    """
    rows: list[dict] = []
    if isinstance(records, Mapping):
        for year, weights in records.items():
            for cat, w in weights.items():
                rows.append({"category": cat, "year": int(year), "weight": float(w)})
    else:
        for cat, year, w in records:
            rows.append({"category": cat, "year": int(year), "weight": float(w)})
    return _finalize(pd.DataFrame(rows, columns=ANCHOR_COLUMNS), expected=expected)

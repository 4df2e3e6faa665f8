"""
CPI-U category definitions and the category -> group mapping.

Each category maps a BLS CPI-U sub-index (US city average, NSA) to:
  - group:    the broad bucket it rolls up into (Food / Energy / Goods / Services)
  - aliases:  labels the December relative-importance tables have used for it

The grouping is declared here rather than inferred from the row order of the
relative-importance spreadsheets, which shifts between publication years.
A different mapping can be loaded from CSV with ``load_group_map``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

ALL_ITEMS = "All items"

GROUPS: tuple[str, ...] = ("Food", "Energy", "Goods", "Services")


@dataclass(frozen=True)
class Category:
    name: str
    series_id: str
    group: str | None
    aliases: tuple[str, ...] = field(default_factory=tuple)


# All series: CUUR0000 prefix = All Urban Consumers, US City Average, NSA

CATEGORIES: list[Category] = [
    Category(ALL_ITEMS,                                   "CUUR0000SA0",    None),

    # ─── Food ──────────────────────────────────────────────────────
    Category("Food at home",                              "CUUR0000SAF11",  "Food"),
    Category("Food away from home",                       "CUUR0000SEFV",   "Food"),

    # ─── Energy ────────────────────────────────────────────────────
    Category("Energy commodities",                        "CUUR0000SACE",   "Energy"),
    Category("Energy services",                           "CUUR0000SEHF",   "Energy"),

    # ─── Commodities less food and energy ──────────────────────────
    Category("Household furnishings and supplies",        "CUUR0000SAH31",  "Goods",
             aliases=("Household furnishings and supplies less household operations",)),
    Category("Apparel",                                   "CUUR0000SAA",    "Goods"),
    Category("New vehicles",                              "CUUR0000SETA01", "Goods"),
    Category("Used cars and trucks",                      "CUUR0000SETA02", "Goods",
             aliases=("Used vehicles",)),
    Category("Motor vehicle parts and equipment",         "CUUR0000SETC",   "Goods"),
    Category("Medical care commodities",                  "CUUR0000SAM1",   "Goods"),
    Category("Recreation commodities",                    "CUUR0000SARC",   "Goods"),
    Category("Education and communication commodities",  "CUUR0000SAEC",   "Goods"),
    Category("Alcoholic beverages",                       "CUUR0000SAF116", "Goods"),
    # Tobacco is a child of "Other goods" in the BLS tables; it is not listed separately.
    Category("Other goods",                               "CUUR0000SAGC",   "Goods",
             aliases=("Other goods and services commodities",)),

    # ─── Services less energy services ─────────────────────────────
    Category("Shelter",                                   "CUUR0000SAH1",   "Services"),
    Category("Water and sewer and trash collection services", "CUUR0000SEHG", "Services",
             aliases=("Water and sewerage maintenance", "Water, sewer, and trash collection services")),
    Category("Household operations",                      "CUUR0000SAH4",   "Services"),
    Category("Medical care services",                     "CUUR0000SAM2",   "Services"),
    Category("Transportation services",                   "CUUR0000SAS4",   "Services"),
    Category("Recreation services",                       "CUUR0000SARS",   "Services"),
    Category("Education and communication services",      "CUUR0000SAES",   "Services"),
    Category("Other personal services",                   "CUUR0000SAGS",   "Services"),
]


def _norm(label: str) -> str:
    return " ".join(str(label).replace("\u2019", "'").split()).casefold()


GROUP_MAP: dict[str, str] = {c.name: c.group for c in CATEGORIES if c.group is not None}

_BY_SERIES: dict[str, Category] = {c.series_id: c for c in CATEGORIES}
_BY_LABEL: dict[str, str] = {
    _norm(label): c.name
    for c in CATEGORIES
    for label in (c.name, *c.aliases)
}


# ── Helpers ───────────────────────────────────────────────────────────

def series_ids(categories: list[Category] | None = None) -> list[str]:
    """Return every BLS series ID needed for the default category set."""
    return [c.series_id for c in (categories or CATEGORIES)]


def category_names(categories: list[Category] | None = None, *, include_all_items: bool = False) -> list[str]:
    names = [c.name for c in (categories or CATEGORIES)]
    if not include_all_items:
        names = [n for n in names if n != ALL_ITEMS]
    return names


def category_for_series(series_id: str) -> Category | None:
    return _BY_SERIES.get(series_id.strip())


def canonical_name(label: str) -> str | None:
    """Map a (cleaned) table label to its canonical category name, or None."""
    return _BY_LABEL.get(_norm(label))


def load_group_map(path: str | Path) -> dict[str, str]:
    """
    Read a ``category,group`` CSV into a mapping.

    Labels are canonicalized through the alias table when they match a known
    category and kept verbatim otherwise. Blank groups are skipped.
    """
    df = pd.read_csv(path, dtype=str).fillna("")
    missing = {"category", "group"} - set(df.columns)
    if missing:
        raise ValueError(f"{path}: group map is missing columns {sorted(missing)}")

    out: dict[str, str] = {}
    for row in df.itertuples(index=False):
        label = row.category.strip()
        group = row.group.strip()
        if not label or not group:
            continue
        out[canonical_name(label) or label] = group
    return out

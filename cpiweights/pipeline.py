from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import pandas as pd

from cpiweights.analysis.rebase import (
    contributions,
    group_contributions,
    group_weights,
    headline_change,
)
from cpiweights.categories import CATEGORIES, GROUP_MAP, Category, category_names, series_ids
from cpiweights.config import PropagationConfig, Settings
from cpiweights.data.bls import BLSClient, price_index_frame
from cpiweights.data.relative_importance import load_anchor_weights
from cpiweights.weights import (
    CoverageReport,
    WeightResult,
    check_coverage,
    compute_weights,
    default_target_months,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    price_index: pd.DataFrame
    anchors: pd.DataFrame
    result: WeightResult
    coverage: CoverageReport
    group_weights: pd.DataFrame
    contributions: pd.DataFrame
    group_contributions: pd.DataFrame
    headline: pd.DataFrame

    def frames(self) -> dict[str, pd.DataFrame]:
        """Named long frames for export."""
        return {
            "weights": self.result.weights,
            "failed_cells": self.result.failed_cells(),
            "coverage": self.coverage.table,
            "group_weights": self.group_weights,
            "contributions": self.contributions,
            "group_contributions": self.group_contributions,
            "headline_change": self.headline,
        }


def make_client(settings: Settings) -> BLSClient:
    return BLSClient(
        api_key=settings.bls_api_key,
        cache_dir=settings.cache_dir,
        max_age_days=settings.cache_max_age_days,
    )


def load_price_index(
    settings: Settings,
    *,
    categories: list[Category] | None = None,
    start_year: int | None = None,
    end_year: int | None = None,
    refresh: bool = False,
    offline: bool = False,
) -> pd.DataFrame:
    """Category price index (long) from the BLS cache / API."""
    cats = categories or CATEGORIES
    client = make_client(settings)
    sids = series_ids(cats)
    if offline:
        data = client.load_cached(sids)
    else:
        data = client.fetch_series(
            sids,
            start_year=start_year or settings.start_year,
            end_year=end_year or settings.end_year,
            refresh=refresh,
        )
    if not data:
        raise RuntimeError(
            "No CPI series available: set BLS_API_KEY / check network, or populate "
            f"the cache at {settings.cache_dir}"
        )
    return price_index_frame(data, cats)


def run_pipeline(
    settings: Settings,
    anchor_paths: Mapping[int, str | Path],
    *,
    price_index: pd.DataFrame | None = None,
    group_map: Mapping[str, str] | None = None,
    start_year: int | None = None,
    end_year: int | None = None,
    refresh: bool = False,
    offline: bool = False,
    strict: bool = False,
    periods: int = 12,
    options: PropagationConfig | None = None,
) -> PipelineResult:
    """
    Load inputs, propagate weights, and derive the downstream tables.

    ``price_index`` short-circuits the BLS download (used by tests and when
    the caller already holds the series). ``options`` overrides ``strict`` and
    the configured coverage tolerance.
    """
    opts = options or PropagationConfig(strict=strict, coverage_tolerance=settings.coverage_tolerance)
    if price_index is None:
        price_index = load_price_index(
            settings, start_year=start_year, end_year=end_year, refresh=refresh, offline=offline
        )
    anchors = load_anchor_weights(anchor_paths)
    if anchors.empty:
        raise RuntimeError("No anchor weights parsed from the relative-importance files")

    months = default_target_months(anchors, price_index)
    logger.info("Propagating weights for %d months", len(months))

    cats = sorted(set(category_names()) & (set(anchors["category"]) | set(price_index["category"])))
    result = compute_weights(
        cats, anchors, price_index, months, strict=opts.strict, include_all_items=opts.include_all_items
    )
    coverage = check_coverage(result.weights, tolerance=opts.coverage_tolerance)

    gm = group_map if group_map is not None else GROUP_MAP
    contrib = contributions(result.weights, price_index, periods=periods)
    return PipelineResult(
        price_index=price_index,
        anchors=anchors,
        result=result,
        coverage=coverage,
        group_weights=group_weights(result.weights, gm),
        contributions=contrib,
        group_contributions=group_contributions(contrib, gm),
        headline=headline_change(price_index, periods=periods),
    )

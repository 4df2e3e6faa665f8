"""
Pytest configuration and shared fixtures for cpiweights tests.

Usage:
    @pytest.fixture functions are automatically available to all tests.
    Import helpers from conftest when needed.
"""
import sys
from pathlib import Path

import pandas as pd
import pytest


def pytest_configure():
    """
    Ensure the repo root is on sys.path for the flat-layout package import
    (`cpiweights`). This keeps tests runnable without an editable install.
    """
    root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(root))


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def example_prices() -> pd.DataFrame:
    """Two categories plus headline, December 2019 -> January 2020."""
    return make_prices({
        "All items": {"2019-12": 100.0, "2020-01": 101.0},
        "A": {"2019-12": 100.0, "2020-01": 102.0},
        "B": {"2019-12": 50.0, "2020-01": 49.0},
    })


@pytest.fixture
def example_anchors() -> pd.DataFrame:
    from cpiweights.data.relative_importance import anchor_weights_from_records

    return anchor_weights_from_records({2019: {"A": 60.0, "B": 40.0}}, expected=["A", "B"])


@pytest.fixture
def multi_year() -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Three categories over Dec 2018 - Dec 2020 with anchors for 2018-2020.

    Index paths are deterministic but uneven so growth differs by category.
    """
    from cpiweights.data.relative_importance import anchor_weights_from_records

    months = pd.date_range("2018-12-01", "2020-12-01", freq="MS")
    rows = []
    for i, m in enumerate(months):
        a = 100.0 * (1.004 ** i)
        b = 80.0 * (1.001 ** i) + (0.5 if i % 3 == 0 else 0.0)
        c = 120.0 * (0.998 ** i)
        headline = 0.5 * a / 100.0 * 100.0 + 0.3 * b / 80.0 * 100.0 + 0.2 * c / 120.0 * 100.0
        rows += [
            {"category": "All items", "date": m, "value": headline},
            {"category": "A", "date": m, "value": a},
            {"category": "B", "date": m, "value": b},
            {"category": "C", "date": m, "value": c},
        ]
    prices = pd.DataFrame(rows)
    anchors = anchor_weights_from_records(
        {
            2018: {"A": 50.0, "B": 30.0, "C": 20.0},
            2019: {"A": 51.0, "B": 29.5, "C": 19.5},
            2020: {"A": 52.0, "B": 29.0, "C": 19.0},
        },
        expected=["A", "B", "C"],
    )
    return prices, anchors


# =============================================================================
# Test Data Helpers
# =============================================================================

def make_prices(series: dict[str, dict[str, float]]) -> pd.DataFrame:
    """
    Build a long (category, date, value) frame.

    Usage:
        px = make_prices({"A": {"2019-12": 100.0, "2020-01": 101.0}})
    """
    rows = [
        {"category": cat, "date": pd.Timestamp(f"{month}-01"), "value": value}
        for cat, obs in series.items()
        for month, value in obs.items()
    ]
    return pd.DataFrame(rows, columns=["category", "date", "value"])


def write_bls_cache(cache_dir: Path, series: dict[str, dict[str, float]]) -> None:
    """Write {series_id: {YYYY-MM: value}} in the BLS client's cache format."""
    cache_dir.mkdir(parents=True, exist_ok=True)
    for sid, obs in series.items():
        df = pd.DataFrame(
            [{"date": f"{m}-01", "value": v} for m, v in obs.items()],
            columns=["date", "value"],
        )
        df.to_csv(cache_dir / f"{sid}.csv", index=False)

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from conftest import make_prices, write_bls_cache
from cpiweights.config import PropagationConfig, Settings
from cpiweights.pipeline import load_price_index, run_pipeline
from cpiweights.weights import MissingAnchorWeight


def _anchor_file(tmp_path: Path, year: int, weights: dict[str, float]) -> Path:
    path = tmp_path / f"relative_importance_{year}.csv"
    pd.DataFrame({
        "Item": ["All items", *weights],
        f"Relative importance Dec. {year}": [100.0, *weights.values()],
    }).to_csv(path, index=False)
    return path


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        BLS_API_KEY=None,
        CPIW_CACHE_DIR=str(tmp_path / "cache"),
        CPIW_OUTPUT_DIR=str(tmp_path / "out"),
        CPIW_COVERAGE_TOLERANCE=0.5,
    )


def test_run_pipeline_with_supplied_prices(tmp_path: Path, settings: Settings):
    prices = make_prices({
        "All items": {"2019-12": 100.0, "2020-01": 101.0, "2020-02": 101.5},
        "Food at home": {"2019-12": 100.0, "2020-01": 102.0, "2020-02": 103.0},
        "Shelter": {"2019-12": 50.0, "2020-01": 49.0, "2020-02": 50.0},
    })
    anchors = {2019: _anchor_file(tmp_path, 2019, {"Food at home(1)": 60.0, "Shelter": 40.0})}

    res = run_pipeline(settings, anchors, price_index=prices)

    assert res.result.ok
    assert res.result.weight("Food at home", "2020-01-01") == pytest.approx(61.2 / 1.01)
    assert list(res.coverage.table["date"]) == list(pd.date_range("2019-12-01", "2020-02-01", freq="MS"))
    assert not res.coverage.ok  # shelter loses weight in January, coverage < 99.5
    assert set(res.group_weights["group"]) == {"Food", "Services"}
    assert set(res.frames()) >= {"weights", "coverage", "group_weights", "contributions"}


def test_category_missing_from_anchor_table_is_reported(tmp_path: Path, settings: Settings):
    prices = make_prices({
        "All items": {"2019-12": 100.0, "2020-01": 101.0},
        "Food at home": {"2019-12": 100.0, "2020-01": 102.0},
        "Shelter": {"2019-12": 50.0, "2020-01": 49.0},
    })
    anchors = {2019: _anchor_file(tmp_path, 2019, {"Food at home": 60.0})}

    res = run_pipeline(settings, anchors, price_index=prices)

    failed = res.result.failed_cells()
    assert set(failed["category"]) == {"Shelter"}
    assert set(failed["kind"]) == {"missing_anchor_weight"}
    assert "Shelter" not in set(res.result.weights["category"])


def test_load_price_index_offline_reads_cache(settings: Settings):
    write_bls_cache(Path(settings.cache_dir), {
        "CUUR0000SA0": {"2019-12": 256.974, "2020-01": 257.971},
        "CUUR0000SAH1": {"2019-12": 320.0},
    })
    px = load_price_index(settings, offline=True)
    assert set(px["category"]) == {"All items", "Shelter"}


def test_load_price_index_without_data_raises(settings: Settings):
    with pytest.raises(RuntimeError):
        load_price_index(settings, offline=True)


def test_strict_options_raise_first_failure(tmp_path: Path, settings: Settings):
    prices = make_prices({
        "All items": {"2019-12": 100.0, "2020-01": 101.0},
        "Food at home": {"2019-12": 100.0, "2020-01": 102.0},
        "Shelter": {"2019-12": 50.0, "2020-01": 49.0},
    })
    anchors = {2019: _anchor_file(tmp_path, 2019, {"Food at home": 60.0})}

    with pytest.raises(MissingAnchorWeight) as exc:
        run_pipeline(settings, anchors, price_index=prices, options=PropagationConfig(strict=True))
    assert exc.value.category == "Shelter"

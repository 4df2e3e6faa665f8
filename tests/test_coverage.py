from __future__ import annotations

import logging

import pandas as pd
import pytest

from cpiweights.weights import check_coverage, compute_weights, consistency_error, coverage_by_month


def _weights(rows):
    return pd.DataFrame(
        [{"category": c, "date": pd.Timestamp(d), "weight": w} for c, d, w in rows],
        columns=["category", "date", "weight"],
    )


def test_coverage_excludes_all_items():
    w = _weights([
        ("All items", "2020-01-01", 100.0),
        ("A", "2020-01-01", 60.0),
        ("B", "2020-01-01", 39.5),
    ])
    cov = coverage_by_month(w)
    assert len(cov) == 1
    assert cov.iloc[0]["coverage"] == pytest.approx(99.5)
    assert cov.iloc[0]["n_categories"] == 2


def test_coverage_restricted_to_subset():
    w = _weights([("A", "2020-01-01", 60.0), ("B", "2020-01-01", 40.0)])
    cov = coverage_by_month(w, categories=["A"])
    assert cov.iloc[0]["coverage"] == pytest.approx(60.0)


def test_check_coverage_flags_out_of_tolerance_months(caplog):
    w = _weights([
        ("A", "2020-01-01", 60.0),
        ("B", "2020-01-01", 39.8),
        ("A", "2020-02-01", 60.0),
        ("B", "2020-02-01", 30.0),
    ])
    with caplog.at_level(logging.WARNING, logger="cpiweights.weights.coverage"):
        rep = check_coverage(w, tolerance=0.5)
    assert not rep.ok
    assert list(rep.flagged["date"]) == [pd.Timestamp("2020-02-01")]
    assert rep.worst_gap == pytest.approx(10.0)
    assert "2020-02" in caplog.text


def test_check_coverage_empty_is_ok():
    rep = check_coverage(pd.DataFrame(columns=["category", "date", "weight"]))
    assert rep.ok
    assert rep.worst_gap is None


def test_skipped_category_shows_up_as_reduced_coverage(example_anchors):
    from conftest import make_prices

    prices = make_prices({
        "All items": {"2019-12": 100.0, "2020-01": 101.0},
        "A": {"2019-12": 100.0, "2020-01": 102.0},
    })
    res = compute_weights(["A", "B"], example_anchors, prices, ["2019-12", "2020-01"])
    rep = check_coverage(res.weights, tolerance=1.0)
    dec, jan = rep.table.iloc[0], rep.table.iloc[1]
    assert dec["coverage"] == pytest.approx(100.0)
    assert bool(dec["within_tolerance"])
    assert jan["coverage"] == pytest.approx(61.2 / 1.01)
    assert not bool(jan["within_tolerance"])


def test_consistency_error_detects_tampering(multi_year):
    prices, anchors = multi_year
    res = compute_weights(["A", "B", "C"], anchors, prices, ["2020-03-01", "2020-04-01"])
    assert consistency_error(res.weights, anchors, prices) <= 1e-9

    bad = res.weights.copy()
    bad.loc[bad["category"] == "A", "weight"] *= 1.01
    assert consistency_error(bad, anchors, prices) == pytest.approx(0.01, rel=1e-6)

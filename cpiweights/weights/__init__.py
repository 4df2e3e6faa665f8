"""
Monthly CPI category weights.

Usage:
    from cpiweights.weights import compute_weights
    result = compute_weights(categories, anchors, prices, months)
    result.weights      # long (category, date, weight) frame
    result.failures     # skipped (category, month) cells
"""
from cpiweights.weights.coverage import (
    CoverageReport,
    check_coverage,
    consistency_error,
    coverage_by_month,
)
from cpiweights.weights.errors import (
    MissingAnchorWeight,
    MissingObservation,
    WeightPropagationError,
)
from cpiweights.weights.models import CellFailure, WeightResult
from cpiweights.weights.propagate import (
    ALL_ITEMS_WEIGHT,
    compute_month,
    compute_weights,
    default_target_months,
)

__all__ = [
    "ALL_ITEMS_WEIGHT",
    "CellFailure",
    "CoverageReport",
    "MissingAnchorWeight",
    "MissingObservation",
    "WeightPropagationError",
    "WeightResult",
    "check_coverage",
    "compute_month",
    "compute_weights",
    "consistency_error",
    "coverage_by_month",
    "default_target_months",
]

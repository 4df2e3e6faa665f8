"""
CPI-U category weights: December relative-importance anchors propagated to
every month, plus coverage checks, rebasing and group contributions.

Usage:
    from cpiweights import compute_weights
    result = compute_weights(categories, anchors, prices, months)
"""
from cpiweights.weights import (
    MissingAnchorWeight,
    MissingObservation,
    WeightResult,
    compute_weights,
)

__version__ = "0.1.0"

__all__ = [
    "MissingAnchorWeight",
    "MissingObservation",
    "WeightResult",
    "compute_weights",
]

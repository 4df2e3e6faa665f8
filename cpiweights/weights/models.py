from __future__ import annotations

from dataclasses import dataclass, field

import pandas as pd

from cpiweights.utils.dates import to_month
from cpiweights.weights.errors import WeightPropagationError

WEIGHT_COLUMNS = ["category", "date", "weight"]
FAILURE_COLUMNS = ["category", "date", "kind", "role", "missing", "message"]


@dataclass(frozen=True)
class CellFailure:
    category: str
    month: pd.Timestamp  # month being computed
    kind: str  # missing_observation | missing_anchor_weight
    role: str  # target | base | anchor
    missing: str  # the absent cell, e.g. "2019-12" or "2019"
    message: str

    @classmethod
    def from_error(cls, err: WeightPropagationError) -> "CellFailure":
        year = getattr(err, "year", None)
        missing = str(year) if year is not None else f"{err.month:%Y-%m}"
        return cls(
            category=err.category,
            month=getattr(err, "target", err.month),
            kind=err.kind,
            role=getattr(err, "role", ""),
            missing=missing,
            message=str(err),
        )


@dataclass(frozen=True)
class WeightResult:
    """
    Output of the weight propagator.

    Attributes:
        weights: long frame (category, date, weight), one row per computed cell,
            sorted by date then category.
        failures: cells that were skipped, in the order they were encountered.
    """
    weights: pd.DataFrame
    failures: tuple[CellFailure, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.failures

    def failed_cells(self) -> pd.DataFrame:
        rows = [
            {
                "category": f.category,
                "date": f.month,
                "kind": f.kind,
                "role": f.role,
                "missing": f.missing,
                "message": f.message,
            }
            for f in self.failures
        ]
        return pd.DataFrame(rows, columns=FAILURE_COLUMNS)

    def weight(self, category: str, month) -> float | None:
        m = to_month(month)
        hit = self.weights[(self.weights["category"] == category) & (self.weights["date"] == m)]
        if hit.empty:
            return None
        return float(hit["weight"].iloc[0])

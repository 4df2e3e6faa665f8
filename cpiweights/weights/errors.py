from __future__ import annotations

import pandas as pd


class WeightPropagationError(Exception):
    """A single (category, month) weight could not be computed."""

    kind = "error"

    def __init__(self, category: str, month: pd.Timestamp, message: str):
        super().__init__(message)
        self.category = category
        self.month = month


class MissingObservation(WeightPropagationError):
    """A required price-index cell is absent (or unusable)."""

    kind = "missing_observation"

    def __init__(self, category: str, month: pd.Timestamp, *, role: str, target: pd.Timestamp | None = None):
        # role: "target" when the month being computed lacks the value,
        # "base" when the preceding December does.
        self.role = role
        self.target = target if target is not None else month
        where = f"{month:%Y-%m}"
        if role == "base":
            where += f" (base month for {self.target:%Y-%m})"
        super().__init__(category, month, f"No price index for {category!r} at {where}")


class MissingAnchorWeight(WeightPropagationError):
    """A category has no December relative-importance value for the year."""

    kind = "missing_anchor_weight"

    def __init__(self, category: str, year: int, *, target: pd.Timestamp):
        self.year = int(year)
        self.role = "anchor"
        self.target = target
        super().__init__(category, target, f"No anchor weight for {category!r} in December {year}")

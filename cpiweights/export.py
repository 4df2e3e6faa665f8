from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Mapping

import pandas as pd

logger = logging.getLogger(__name__)

# Excel caps sheet names at 31 chars and forbids []:*?/\
_SHEET_BAD = re.compile(r"[\[\]:*?/\\]")


def to_wide(frame: pd.DataFrame, value_col: str, *, key_col: str | None = None) -> pd.DataFrame:
    """Long (key, date, value) -> wide date x key, months formatted as YYYY-MM."""
    if frame is None or frame.empty:
        return pd.DataFrame()
    key = key_col or ("category" if "category" in frame.columns else "group")
    wide = frame.pivot_table(index="date", columns=key, values=value_col, aggfunc="last").sort_index()
    wide.index = pd.to_datetime(wide.index).strftime("%Y-%m")
    wide.index.name = "date"
    wide.columns.name = None
    return wide


def _sheet_name(name: str) -> str:
    return _SHEET_BAD.sub("_", name)[:31] or "Sheet"


def export_csv(frames: Mapping[str, pd.DataFrame], out_dir: str | Path) -> list[Path]:
    """Write each frame to ``out_dir/<name>.csv``. Empty frames are skipped."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for name, df in frames.items():
        if df is None or df.empty:
            logger.info("Skipping empty export %s", name)
            continue
        path = out / f"{name}.csv"
        index = df.index.name is not None
        df.to_csv(path, index=index)
        written.append(path)
    return written


def export_xlsx(frames: Mapping[str, pd.DataFrame], path: str | Path) -> Path | None:
    """Write every non-empty frame to its own sheet of one workbook."""
    path = Path(path)
    non_empty = {k: v for k, v in frames.items() if v is not None and not v.empty}
    if not non_empty:
        logger.info("Nothing to write to %s", path)
        return None
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in non_empty.items():
            out = df.copy()
            for col in out.columns:
                if pd.api.types.is_datetime64_any_dtype(out[col]):
                    out[col] = out[col].dt.strftime("%Y-%m")
            out.to_excel(writer, sheet_name=_sheet_name(name), index=out.index.name is not None)
    return path

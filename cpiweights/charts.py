"""Static PNG charts of weights, rebased indices and group contributions."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import pandas as pd

logger = logging.getLogger(__name__)

BG = "#0f1318"
GRID = "#1a2030"
TEXT = "#c9d1d9"


def _pyplot():
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    return plt


def _style(fig, ax, title: str, ylabel: str) -> None:
    import matplotlib.dates as mdates

    fig.patch.set_facecolor(BG)
    ax.set_facecolor(BG)
    ax.set_title(title, color=TEXT)
    ax.set_ylabel(ylabel, color=TEXT)
    ax.tick_params(colors=TEXT)
    for spine in ax.spines.values():
        spine.set_color(GRID)
    ax.grid(True, color=GRID, linestyle="--", linewidth=0.6)
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m"))
    ax.xaxis.get_offset_text().set_visible(False)
    fig.autofmt_xdate()


def _line_chart(wide: pd.DataFrame, path: str | Path, title: str, ylabel: str, hline: float | None = None) -> Path | None:
    if wide.empty:
        return None
    plt = _pyplot()
    fig, ax = plt.subplots(figsize=(11, 6))
    x = pd.to_datetime(wide.index).to_pydatetime()
    for col in wide.columns:
        ax.plot(x, wide[col].to_numpy(), linewidth=1.8, label=str(col))
    if hline is not None:
        ax.axhline(hline, color=TEXT, linewidth=0.8)
    _style(fig, ax, title, ylabel)
    ax.legend(fontsize=8, facecolor=BG, labelcolor=TEXT, edgecolor=GRID)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=120, bbox_inches="tight", facecolor=BG)
    plt.close(fig)
    logger.info("Wrote chart %s", path)
    return path


def _select(frame: pd.DataFrame, key: str, value: str, names: Iterable[str] | None) -> pd.DataFrame:
    if frame is None or frame.empty:
        return pd.DataFrame()
    df = frame
    if names is not None:
        df = df[df[key].isin(list(names))]
    if df.empty:
        return pd.DataFrame()
    return df.pivot_table(index="date", columns=key, values=value, aggfunc="last").sort_index()


def plot_weights(weights: pd.DataFrame, categories: Iterable[str] | None, path: str | Path) -> Path | None:
    return _line_chart(
        _select(weights, "category", "weight", categories),
        path,
        "CPI-U relative importance (monthly, propagated from December)",
        "Weight (All items = 100)",
    )


def plot_rebased(rebased: pd.DataFrame, categories: Iterable[str] | None, path: str | Path) -> Path | None:
    return _line_chart(
        _select(rebased, "category", "value", categories),
        path,
        "CPI-U indices, rebased",
        "Index (base month = 100)",
        hline=100.0,
    )


def plot_group_contributions(contrib: pd.DataFrame, path: str | Path) -> Path | None:
    """Stacked bars of group contributions (percentage points) to headline change."""
    wide = _select(contrib, "group", "contribution", None)
    if wide.empty:
        return None
    plt = _pyplot()
    fig, ax = plt.subplots(figsize=(11, 6))
    x = pd.to_datetime(wide.index).to_pydatetime()
    pos = None
    neg = None
    for col in wide.columns:
        vals = wide[col].fillna(0.0).to_numpy()
        up = vals.clip(0, None)
        down = vals.clip(None, 0)
        ax.bar(x, up, width=25, bottom=pos, label=str(col))
        ax.bar(x, down, width=25, bottom=neg, color=ax.patches[-1].get_facecolor())
        pos = up if pos is None else pos + up
        neg = down if neg is None else neg + down
    ax.plot(x, wide.sum(axis=1).to_numpy(), color=TEXT, linewidth=1.5, label="Total")
    ax.axhline(0, color=TEXT, linewidth=0.8)
    _style(fig, ax, "Contributions to CPI-U change", "Percentage points")
    ax.legend(fontsize=8, facecolor=BG, labelcolor=TEXT, edgecolor=GRID)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=120, bbox_inches="tight", facecolor=BG)
    plt.close(fig)
    logger.info("Wrote chart %s", path)
    return path

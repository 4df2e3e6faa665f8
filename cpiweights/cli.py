"""
cpiw - CPI-U category weight CLI

Primary commands:
- cpiw fetch        download / cache category indices
- cpiw weights      propagate monthly weights from December anchors
- cpiw coverage     coverage of propagated weights vs 100
- cpiw rebase       rebased indices
- cpiw chart        PNG charts
- cpiw categories   category -> group map
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional

import typer

app = typer.Typer(
    add_completion=False,
    help="""cpiw - CPI-U category weights

\b
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
DATA
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
  cpiw fetch                 Download category indices (BLS)
  cpiw categories            Category -> group map

\b
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
WEIGHTS
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
  cpiw weights -a DIR        Monthly weights from December anchors
  cpiw coverage -a DIR       Coverage check (sum vs 100)

\b
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
OUTPUT
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
  cpiw rebase --base 2019-12 Rebased indices
  cpiw chart -a DIR          PNG charts

\b
Run 'cpiw <command> --help' for details.
""",
)

_YEAR_RE = re.compile(r"(?<!\d)(19|20)\d{2}(?!\d)")


def _anchor_paths(anchor_dir: Optional[Path], anchors: Optional[List[str]]) -> dict[int, Path]:
    """
    Collect {year: file} from ``--anchors YEAR=PATH`` pairs and/or every
    CSV/XLSX in ``--anchor-dir`` whose name carries a four-digit year.
    """
    out: dict[int, Path] = {}
    if anchor_dir is not None:
        for p in sorted(anchor_dir.iterdir()):
            if p.suffix.lower() not in {".csv", ".xlsx", ".xlsm"}:
                continue
            m = _YEAR_RE.search(p.stem)
            if m:
                out[int(m.group(0))] = p
    for item in anchors or []:
        year, sep, path = item.partition("=")
        if not sep or not year.strip().isdigit():
            raise typer.BadParameter(f"expected YEAR=PATH, got {item!r}", param_hint="--anchors")
        out[int(year)] = Path(path.strip())
    if not out:
        raise typer.BadParameter("no relative-importance files given", param_hint="--anchor-dir / --anchors")
    return out


def _run(anchor_dir, anchors, *, refresh: bool, offline: bool, strict: bool, group_map: Optional[Path] = None):
    from rich import print

    from cpiweights.categories import load_group_map
    from cpiweights.config import load_settings
    from cpiweights.pipeline import run_pipeline
    from cpiweights.weights import WeightPropagationError

    settings = load_settings()
    try:
        gm = load_group_map(group_map) if group_map is not None else None
        return settings, run_pipeline(
            settings,
            _anchor_paths(anchor_dir, anchors),
            group_map=gm,
            refresh=refresh,
            offline=offline,
            strict=strict,
        )
    except WeightPropagationError as e:
        print(f"[red]Weight propagation failed:[/red] {e}")
        raise typer.Exit(1)
    except (ValueError, OSError) as e:
        print(f"[red]Invalid input:[/red] {e}")
        raise typer.Exit(1)
    except RuntimeError as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
):
    from cpiweights.utils.logging import setup_logging

    setup_logging(log_level)


# ---------------------------------------------------------------------------
# DATA
# ---------------------------------------------------------------------------

@app.command("fetch")
def fetch_cmd(
    start_year: Optional[int] = typer.Option(None, "--start-year", help="First year (default from config)"),
    end_year: Optional[int] = typer.Option(None, "--end-year", help="Last year (default: current)"),
    refresh: bool = typer.Option(False, "--refresh", help="Ignore the cache"),
):
    """Download CPI-U category indices from the BLS API into the CSV cache."""
    from rich.console import Console
    from rich.table import Table

    from cpiweights.config import load_settings
    from cpiweights.pipeline import load_price_index
    from cpiweights.utils.dates import format_month

    settings = load_settings()
    try:
        px = load_price_index(settings, start_year=start_year, end_year=end_year, refresh=refresh)
    except RuntimeError as e:
        Console().print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title="CPI-U category indices")
    table.add_column("Category")
    table.add_column("First", justify="right")
    table.add_column("Last", justify="right")
    table.add_column("Obs", justify="right")
    for cat, g in px.groupby("category"):
        table.add_row(cat, format_month(g["date"].min()), format_month(g["date"].max()), str(len(g)))
    Console().print(table)


@app.command("categories")
def categories_cmd(
    group_map: Optional[Path] = typer.Option(None, "--group-map", help="CSV with category,group columns"),
):
    """Show the category -> group map."""
    from rich.console import Console
    from rich.table import Table

    from cpiweights.categories import CATEGORIES, GROUP_MAP, load_group_map

    gm = load_group_map(group_map) if group_map is not None else GROUP_MAP
    table = Table(title="Categories")
    table.add_column("Category")
    table.add_column("Series")
    table.add_column("Group")
    known = {c.name: c.series_id for c in CATEGORIES}
    for name in sorted(set(known) | set(gm)):
        table.add_row(name, known.get(name, "-"), gm.get(name, "-"))
    Console().print(table)


# ---------------------------------------------------------------------------
# WEIGHTS
# ---------------------------------------------------------------------------

@app.command("weights")
def weights_cmd(
    anchor_dir: Optional[Path] = typer.Option(None, "--anchor-dir", "-a", help="Directory of December relative-importance tables"),
    anchors: Optional[List[str]] = typer.Option(None, "--anchors", help="YEAR=PATH (repeatable)"),
    group_map: Optional[Path] = typer.Option(None, "--group-map", help="CSV with category,group columns"),
    out_dir: Optional[Path] = typer.Option(None, "--out", "-o", help="Output directory (default from config)"),
    xlsx: bool = typer.Option(True, "--xlsx/--no-xlsx", help="Also write a workbook"),
    refresh: bool = typer.Option(False, "--refresh", help="Re-download BLS series"),
    offline: bool = typer.Option(False, "--offline", help="Use cached BLS series only"),
    strict: bool = typer.Option(False, "--strict", help="Fail on the first missing cell"),
):
    """Propagate monthly category weights and export them."""
    from rich.console import Console
    from rich.table import Table

    from cpiweights.export import export_csv, export_xlsx, to_wide
    from cpiweights.utils.dates import format_month
    from cpiweights.utils.logging import log_event

    settings, res = _run(anchor_dir, anchors, refresh=refresh, offline=offline, strict=strict, group_map=group_map)
    console = Console()

    w = res.result.weights
    if w.empty:
        console.print("[yellow]No weights computed.[/yellow]")
        raise typer.Exit(1)

    last = w["date"].max()
    latest = w[w["date"] == last].sort_values("weight", ascending=False)
    table = Table(title=f"Relative importance, {format_month(last)}")
    table.add_column("Category")
    table.add_column("Weight", justify="right")
    for row in latest.itertuples(index=False):
        table.add_row(row.category, f"{row.weight:.3f}")
    console.print(table)

    out = out_dir or Path(settings.output_dir)
    frames = res.frames()
    frames["weights_wide"] = to_wide(w, "weight")
    written = export_csv(frames, out)
    if xlsx:
        book = export_xlsx(frames, out / "cpi_weights.xlsx")
        if book is not None:
            written.append(book)

    log_event(
        "weights",
        {
            "months": int(w["date"].nunique()),
            "categories": int(w["category"].nunique()),
            "failed_cells": len(res.result.failures),
            "coverage_flagged": len(res.coverage.flagged),
            "written": [str(p) for p in written],
        },
    )


@app.command("coverage")
def coverage_cmd(
    anchor_dir: Optional[Path] = typer.Option(None, "--anchor-dir", "-a", help="Directory of December relative-importance tables"),
    anchors: Optional[List[str]] = typer.Option(None, "--anchors", help="YEAR=PATH (repeatable)"),
    offline: bool = typer.Option(False, "--offline", help="Use cached BLS series only"),
    show: int = typer.Option(24, "--show", "-n", help="Months to show"),
):
    """Coverage of propagated weights (sum of categories vs 100)."""
    from rich.console import Console
    from rich.table import Table

    from cpiweights.utils.dates import format_month

    settings, res = _run(anchor_dir, anchors, refresh=False, offline=offline, strict=False)
    rep = res.coverage

    table = Table(title=f"Coverage (tolerance ±{rep.tolerance:g})")
    table.add_column("Month")
    table.add_column("Coverage", justify="right")
    table.add_column("Gap", justify="right")
    table.add_column("N", justify="right")
    for row in rep.table.tail(int(show)).itertuples(index=False):
        style = "" if row.within_tolerance else "red"
        table.add_row(
            format_month(row.date), f"{row.coverage:.3f}", f"{row.gap:+.3f}", str(row.n_categories), style=style
        )
    Console().print(table)

    if res.result.failures:
        Console().print(f"[yellow]{len(res.result.failures)} cell(s) skipped[/yellow]")
    if not rep.ok:
        raise typer.Exit(2)


# ---------------------------------------------------------------------------
# OUTPUT
# ---------------------------------------------------------------------------

@app.command("rebase")
def rebase_cmd(
    base: str = typer.Option(..., "--base", "-b", help="Base month, e.g. 2019-12"),
    out_dir: Optional[Path] = typer.Option(None, "--out", "-o", help="Output directory (default from config)"),
    offline: bool = typer.Option(False, "--offline", help="Use cached BLS series only"),
):
    """Write indices rebased to BASE = 100."""
    from rich import print

    from cpiweights.analysis.rebase import rebase
    from cpiweights.config import load_settings
    from cpiweights.export import export_csv, to_wide
    from cpiweights.pipeline import load_price_index

    settings = load_settings()
    try:
        px = load_price_index(settings, offline=offline)
    except RuntimeError as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    rebased = rebase(px, base)
    if rebased.empty:
        print(f"[yellow]No series observed at {base}[/yellow]")
        raise typer.Exit(1)
    written = export_csv({"rebased": to_wide(rebased, "value")}, out_dir or Path(settings.output_dir))
    for p in written:
        print(f"[green]wrote[/green] {p}")


@app.command("chart")
def chart_cmd(
    anchor_dir: Optional[Path] = typer.Option(None, "--anchor-dir", "-a", help="Directory of December relative-importance tables"),
    anchors: Optional[List[str]] = typer.Option(None, "--anchors", help="YEAR=PATH (repeatable)"),
    base: Optional[str] = typer.Option(None, "--base", "-b", help="Base month for the rebased chart"),
    category: Optional[List[str]] = typer.Option(None, "--category", "-c", help="Restrict to these categories"),
    out_dir: Optional[Path] = typer.Option(None, "--out", "-o", help="Output directory (default from config)"),
    offline: bool = typer.Option(False, "--offline", help="Use cached BLS series only"),
):
    """Render weight, rebased-index and contribution charts."""
    from rich import print

    from cpiweights.analysis.rebase import rebase
    from cpiweights.categories import ALL_ITEMS
    from cpiweights.charts import plot_group_contributions, plot_rebased, plot_weights

    settings, res = _run(anchor_dir, anchors, refresh=False, offline=offline, strict=False)
    out = out_dir or Path(settings.output_dir)
    cats = category or None

    paths = [
        plot_weights(res.result.weights[res.result.weights["category"] != ALL_ITEMS], cats, out / "weights.png"),
        plot_group_contributions(res.group_contributions, out / "group_contributions.png"),
    ]
    if base:
        paths.append(plot_rebased(rebase(res.price_index, base), cats, out / "rebased.png"))

    for p in paths:
        if p is not None:
            print(f"[green]wrote[/green] {p}")


if __name__ == "__main__":
    app()

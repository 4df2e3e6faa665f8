"""
BLS (Bureau of Labor Statistics) API v2 client with CSV caching.

Fetches CPI-U category index series for weight propagation.
"""
from __future__ import annotations

import logging
import os
from datetime import date, datetime
from pathlib import Path

import pandas as pd
import requests

from cpiweights.categories import CATEGORIES, Category, category_for_series

logger = logging.getLogger(__name__)

BLS_API_URL = "https://api.bls.gov/publicAPI/v2/timeseries/data/"
CACHE_DIR = Path("data") / "cache" / "bls"

# API v2 limits per request
MAX_SERIES_PER_REQUEST = 50
MAX_YEARS_PER_REQUEST = 20


class BLSClient:
    """Fetch and cache BLS time-series data (CPI category indices)."""

    def __init__(
        self,
        api_key: str | None = None,
        cache_dir: str | Path | None = None,
        max_age_days: int = 15,
    ):
        self.api_key = api_key or os.environ.get("BLS_API_KEY", "")
        self.cache_dir = Path(cache_dir) if cache_dir else CACHE_DIR
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.max_age_days = int(max_age_days)

    def _cache_path(self, series_id: str) -> Path:
        return self.cache_dir / f"{series_id}.csv"

    def _is_cache_fresh(self, path: Path) -> bool:
        """Cache is fresh if it exists and was updated within max_age_days."""
        if not path.exists():
            return False
        mtime = datetime.fromtimestamp(path.stat().st_mtime)
        age = (datetime.now() - mtime).days
        return age < self.max_age_days

    def _read_cache(self, path: Path) -> pd.DataFrame | None:
        try:
            return pd.read_csv(path, parse_dates=["date"])
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logger.warning("Unreadable BLS cache %s: %s", path, e)
            return None

    def load_cached(self, series_ids: list[str]) -> dict[str, pd.DataFrame]:
        """Whatever is in the cache, regardless of age. Never touches the network."""
        result: dict[str, pd.DataFrame] = {}
        for sid in series_ids:
            path = self._cache_path(sid)
            if path.exists():
                df = self._read_cache(path)
                if df is not None:
                    result[sid] = df
        return result

    def fetch_series(
        self,
        series_ids: list[str],
        start_year: int = 2012,
        end_year: int | None = None,
        refresh: bool = False,
    ) -> dict[str, pd.DataFrame]:
        """
        Fetch multiple BLS series. Returns {series_id: DataFrame(date, value)}.

        Fresh cache entries are returned as-is. Everything else is requested
        from the API; any series the API does not deliver (HTTP failure
        or a rejected request) falls back to its stale cache.
        """
        if end_year is None:
            end_year = date.today().year

        result: dict[str, pd.DataFrame] = {}
        for sid in series_ids:
            if not refresh and self._is_cache_fresh(self._cache_path(sid)):
                df = self._read_cache(self._cache_path(sid))
                if df is not None:
                    result[sid] = df

        wanted = [sid for sid in series_ids if sid not in result]
        if not wanted:
            return result

        for sid, df in self._fetch_batches(wanted, start_year, end_year).items():
            df.to_csv(self._cache_path(sid), index=False)
            result[sid] = df

        unresolved = [sid for sid in wanted if sid not in result]
        if unresolved:
            stale = self.load_cached(unresolved)
            if stale:
                logger.warning("Using stale cache for %s", ", ".join(stale))
                result.update(stale)
            lost = [sid for sid in unresolved if sid not in stale]
            if lost:
                logger.warning("No BLS observations for: %s", ", ".join(lost))
        return result

    def _fetch_batches(self, series_ids: list[str], start_year: int, end_year: int) -> dict[str, pd.DataFrame]:
        """API results for every batch that succeeds; failed batches are logged and skipped."""
        out: dict[str, pd.DataFrame] = {}
        for i in range(0, len(series_ids), MAX_SERIES_PER_REQUEST):
            batch = series_ids[i : i + MAX_SERIES_PER_REQUEST]
            try:
                out.update(self._api_fetch(batch, start_year, end_year))
            except (requests.RequestException, ValueError) as e:
                logger.error("BLS API fetch failed for %d series: %s", len(batch), e)
        return out

    def _api_fetch(
        self, series_ids: list[str], start_year: int, end_year: int
    ) -> dict[str, pd.DataFrame]:
        """Call BLS API v2 and parse response into DataFrames."""
        all_data: dict[str, list[dict]] = {sid: [] for sid in series_ids}

        for yr_start in range(start_year, end_year + 1, MAX_YEARS_PER_REQUEST):
            yr_end = min(yr_start + MAX_YEARS_PER_REQUEST - 1, end_year)

            payload = {
                "seriesid": series_ids,
                "startyear": str(yr_start),
                "endyear": str(yr_end),
            }
            if self.api_key:
                payload["registrationkey"] = self.api_key

            resp = requests.post(BLS_API_URL, json=payload, timeout=30)
            resp.raise_for_status()
            body = resp.json()

            if body.get("status") != "REQUEST_SUCCEEDED":
                msg = body.get("message", ["Unknown error"])
                logger.warning("BLS API warning: %s", msg)

            for series in body.get("Results", {}).get("series", []):
                sid = series.get("seriesID", "")
                all_data.setdefault(sid, []).extend(parse_observations(series.get("data", [])))

        result: dict[str, pd.DataFrame] = {}
        for sid, rows in all_data.items():
            if not rows:
                continue
            df = pd.DataFrame(rows)
            df["date"] = pd.to_datetime(df["date"])
            df = df.drop_duplicates(subset=["date"]).sort_values("date").reset_index(drop=True)
            result[sid] = df

        return result


def parse_observations(items: list[dict]) -> list[dict]:
    """BLS ``data`` entries -> [{date, value}], monthly periods only."""
    rows: list[dict] = []
    for item in items:
        period = item.get("period", "")
        if not period.startswith("M") or period == "M13":
            continue  # annual averages
        try:
            year = int(item["year"])
            month = int(period[1:])
            val = float(item.get("value", ""))
        except (KeyError, ValueError, TypeError):
            continue
        rows.append({"date": f"{year}-{month:02d}-01", "value": val})
    return rows


def price_index_frame(
    data: dict[str, pd.DataFrame],
    categories: list[Category] | None = None,
) -> pd.DataFrame:
    """
    {series_id: DataFrame(date, value)} -> long (category, date, value) frame.

    Series not in the category table are dropped with a warning.
    """
    wanted = {c.series_id: c for c in (categories or CATEGORIES)}
    frames: list[pd.DataFrame] = []
    for sid, df in data.items():
        cat = wanted.get(sid) or category_for_series(sid)
        if cat is None:
            logger.warning("Series %s is not mapped to a category; dropped", sid)
            continue
        if df is None or df.empty:
            continue
        part = df[["date", "value"]].copy()
        part["date"] = pd.to_datetime(part["date"]).dt.to_period("M").dt.to_timestamp()
        part["value"] = pd.to_numeric(part["value"], errors="coerce")
        part.insert(0, "category", cat.name)
        frames.append(part.dropna(subset=["value"]))

    if not frames:
        return pd.DataFrame(columns=["category", "date", "value"])
    out = pd.concat(frames, ignore_index=True)
    out = out.drop_duplicates(subset=["category", "date"], keep="last")
    return out.sort_values(["category", "date"]).reset_index(drop=True)

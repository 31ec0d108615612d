"""Summary tables for the statistics modes, built with pandas."""
from __future__ import annotations

from typing import Any, Iterable, Mapping

import pandas as pd


def _native(value: Any) -> Any:
    if value is None:
        return None
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, float) and pd.isna(value):
        return None
    return value


def frame_records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    return [
        {str(key): _native(value) for key, value in row.items()}
        for row in frame.to_dict(orient="records")
    ]


def grouped_summary(
    rows: Iterable[Mapping[str, Any]],
    by: str,
    *,
    count_as: str,
    sums: Mapping[str, str] | None = None,
    missing: str = "Unknown",
) -> list[dict[str, Any]]:
    """Count rows per ``by`` value and total the ``sums`` columns.

    ``sums`` maps source column to output column name.
    """

    records = list(rows)
    if not records:
        return []
    sums = dict(sums or {})
    frame = pd.DataFrame(records)
    if by not in frame.columns:
        frame[by] = missing
    frame[by] = frame[by].fillna(missing).astype(str)
    for source in sums:
        if source not in frame.columns:
            frame[source] = 0.0
        frame[source] = pd.to_numeric(frame[source], errors="coerce").fillna(0.0)

    grouped = frame.groupby(by, sort=True)
    result = grouped.size().rename(count_as).to_frame()
    for source, target in sums.items():
        result[target] = grouped[source].sum().round(2)
    return frame_records(result.reset_index())


def monthly_summary(
    rows: Iterable[Mapping[str, Any]],
    date_field: str,
    *,
    count_as: str,
    sums: Mapping[str, str] | None = None,
) -> list[dict[str, Any]]:
    records = [row for row in rows if row.get(date_field)]
    if not records:
        return []
    frame = pd.DataFrame(records)
    stamps = pd.to_datetime(frame[date_field], errors="coerce")
    frame = frame.assign(Year=stamps.dt.year, Month=stamps.dt.month).dropna(subset=["Year"])
    frame["Year"] = frame["Year"].astype(int)
    frame["Month"] = frame["Month"].astype(int)
    sums = dict(sums or {})
    for source in sums:
        if source not in frame.columns:
            frame[source] = 0.0
        frame[source] = pd.to_numeric(frame[source], errors="coerce").fillna(0.0)

    grouped = frame.groupby(["Year", "Month"], sort=True)
    result = grouped.size().rename(count_as).to_frame()
    for source, target in sums.items():
        result[target] = grouped[source].sum().round(2)
    return frame_records(result.reset_index())


def totals(rows: Iterable[Mapping[str, Any]], columns: Mapping[str, str], *, count_as: str) -> dict[str, Any]:
    records = list(rows)
    summary: dict[str, Any] = {count_as: len(records)}
    if not records:
        summary.update({target: 0.0 for target in columns.values()})
        return summary
    frame = pd.DataFrame(records)
    for source, target in columns.items():
        if source in frame.columns:
            summary[target] = round(float(pd.to_numeric(frame[source], errors="coerce").fillna(0.0).sum()), 2)
        else:
            summary[target] = 0.0
    return summary


__all__ = ["frame_records", "grouped_summary", "monthly_summary", "totals"]

"""
chart_generator.py — Deterministic Chart Synthesis

Builds default chart specs straight from tabular uploads (CSV / Excel),
with no AI involved. The report viewer renders these next to whatever
charts the generation provider proposed.

Rules per table:
  - needs a category column plus at least one value column, and one data row
  - category (x axis) = first column
  - bar chart for the first value column
  - line chart for the second value column, when there is one
"""

import logging
import math

from ..models.schemas import CellValue, ChartSpec, TabularRows, UploadedFile
from .file_parser import normalize_to_table

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────

def coerce_cell(value: str) -> CellValue:
    """
    Best-effort numeric coercion for a string cell.

    "42" -> 42, "3.5" -> 3.5, "1e3" -> 1000.0, "007" -> 7.
    Blank strings, "nan", "inf" and anything non-numeric stay strings.
    """
    text = value.strip() if isinstance(value, str) else str(value)
    if not text:
        return value
    try:
        number = float(text)
    except ValueError:
        return value
    if math.isnan(number) or math.isinf(number):
        return value
    if number.is_integer() and not any(c in text for c in ".eE"):
        return int(number)
    return number


def _chart_rows(table: TabularRows) -> list[dict[str, CellValue]]:
    return [
        {header: coerce_cell(row[i]) for i, header in enumerate(table.headers)}
        for row in table.rows
    ]


# ──────────────────────────────────────────────────────────────────
# Chart Builders
# ──────────────────────────────────────────────────────────────────

def charts_for_table(table: TabularRows) -> list[ChartSpec]:
    """Default bar (and line) charts for one table."""
    if len(table.headers) < 2 or not table.rows:
        return []

    x_key = table.headers[0]
    y_keys = table.headers[1:]
    data = _chart_rows(table)

    charts = [
        ChartSpec(type="bar", title=f"{y_keys[0]} vs {x_key}", x_key=x_key, y_keys=[y_keys[0]], data=data)
    ]
    if len(y_keys) > 1:
        charts.append(
            ChartSpec(type="line", title=f"{y_keys[1]} vs {x_key}", x_key=x_key, y_keys=[y_keys[1]], data=data)
        )
    return charts


def synthesize_charts(tables: list[TabularRows]) -> list[ChartSpec]:
    """Charts for every table, in order. A table that fails contributes nothing."""
    charts = []
    for table in tables:
        try:
            charts.extend(charts_for_table(table))
        except Exception as e:
            logger.warning("[Charts] Skipping table with headers %s: %s", table.headers[:5], e)
    return charts


def charts_from_files(files: list[UploadedFile]) -> list[ChartSpec]:
    """Normalize each tabular upload and synthesize its charts, in upload order."""
    tables = []
    for file in files:
        table = normalize_to_table(file)
        if table is not None:
            tables.append(table)
    return synthesize_charts(tables)

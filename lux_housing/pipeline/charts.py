"""Comparison line charts rendered to PNG files."""

from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from lux_housing.common.constants import NATIONAL_LABEL  # noqa: E402
from lux_housing.common.errors import StageError  # noqa: E402
from lux_housing.common.fs import ensure_dir  # noqa: E402

METRIC_LABELS = {
    "index": "Price index (base year = 100)",
    "value": "Average advertised price (EUR)",
}


def _series(frame: pd.DataFrame, level: str, locality: str, column: str) -> pd.DataFrame:
    subset = frame[(frame["level"] == level) & (frame["locality"] == locality)]
    return subset[["year", column]].dropna().sort_values("year")


def render_chart(index_frame: pd.DataFrame, chart_config: dict, value_column: str, out_dir: Path) -> dict:
    metric = chart_config.get("metric", "index")
    if metric not in METRIC_LABELS:
        raise StageError(f"Unknown chart metric {metric!r} in chart {chart_config['id']}")
    column = "index" if metric == "index" else value_column

    lines: list[tuple[str, pd.DataFrame]] = []
    skipped: list[str] = []
    for locality in chart_config["localities"]:
        series = _series(index_frame, "locality", locality, column)
        if series.empty:
            skipped.append(locality)
            continue
        lines.append((locality, series))
    if chart_config.get("include_national", True):
        national = _series(index_frame, "country", NATIONAL_LABEL, column)
        if not national.empty:
            lines.append((NATIONAL_LABEL, national))

    result = {"id": chart_config["id"], "path": None, "series": [label for label, _ in lines], "skipped": skipped}
    if not lines:
        return result

    fig, ax = plt.subplots(figsize=(10, 6))
    for label, series in lines:
        style = "--" if label == NATIONAL_LABEL else "-"
        ax.plot(series["year"], series[column], style, marker="o", label=label)
    ax.set_title(chart_config["title"])
    ax.set_xlabel("Year")
    ax.set_ylabel(METRIC_LABELS[metric])
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.tight_layout()

    ensure_dir(out_dir)
    out_path = out_dir / f"{chart_config['id']}.png"
    fig.savefig(out_path, dpi=100)
    plt.close(fig)

    result["path"] = str(out_path)
    return result


def run_charts(pipeline_config: dict, data_dir: Path) -> dict:
    index_path = data_dir / "out" / pipeline_config["output"]["index_filename"]
    if not index_path.exists():
        raise StageError(f"Missing price index: {index_path}")

    index_frame = pd.read_csv(index_path, encoding="utf-8")
    out_dir = data_dir / "out" / "charts"
    value_column = pipeline_config["index"]["value_column"]

    charts = [
        render_chart(index_frame, chart_config, value_column, out_dir)
        for chart_config in pipeline_config["charts"]
    ]
    skipped = {chart["id"]: chart["skipped"] for chart in charts if chart["skipped"]}
    return {
        "charts": [chart for chart in charts if chart["path"]],
        "skipped_localities": skipped,
        "empty_charts": [chart["id"] for chart in charts if not chart["path"]],
    }

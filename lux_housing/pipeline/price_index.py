"""Per-locality and national price indices."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from lux_housing.common.constants import NATIONAL_LABEL
from lux_housing.common.errors import StageError
from lux_housing.pipeline.export import read_corrected_csv, write_index_csv

KEYS = ["level", "locality"]


def national_fallback(frame: pd.DataFrame, value_column: str) -> pd.DataFrame:
    """Mean over localities per year, used when the source has no country rows."""
    localities = frame[frame["level"] == "locality"]
    national = localities.groupby("year", as_index=False)[value_column].mean()
    national["level"] = "country"
    national["locality"] = NATIONAL_LABEL
    return national


def compute_price_index(
    frame: pd.DataFrame,
    value_column: str,
    base_year: int | None = None,
) -> pd.DataFrame:
    """Index each series to 100 at ``base_year``.

    ``base_year`` defaults to the earliest year in the data. A series with no
    positive value in the base year gets NaN indices rather than being dropped.
    """
    if value_column not in frame.columns:
        raise StageError(f"Value column {value_column!r} not in dataset")
    data = frame.dropna(subset=["year"])
    if data.empty:
        raise StageError("No rows to index")

    data = data.groupby([*KEYS, "year"], as_index=False)[value_column].mean()
    if not (data["level"] == "country").any():
        data = pd.concat([data, national_fallback(data, value_column)], ignore_index=True)

    if base_year is None:
        base_year = int(data["year"].min())

    base = data.loc[data["year"] == base_year, [*KEYS, value_column]].rename(
        columns={value_column: "base_value"}
    )
    data = data.merge(base, on=KEYS, how="left")
    base_values = data["base_value"].where(data["base_value"] > 0)
    data["index"] = data[value_column] / base_values * 100.0
    data["base_year"] = base_year
    data["index"] = data["index"].round(4)
    return data.drop(columns=["base_value"])


def run_index(pipeline_config: dict, data_dir: Path) -> dict:
    index_config = pipeline_config["index"]
    corrected_path = data_dir / "out" / pipeline_config["output"]["corrected_filename"]
    if not corrected_path.exists():
        raise StageError(f"Missing corrected dataset: {corrected_path}")

    frame = read_corrected_csv(corrected_path)
    indexed = compute_price_index(
        frame,
        index_config["value_column"],
        base_year=index_config.get("base_year"),
    )
    out_path = data_dir / "out" / pipeline_config["output"]["index_filename"]
    write_index_csv(out_path, indexed)
    return {
        "path": str(out_path),
        "rows_in": len(frame),
        "rows_out": len(indexed),
        "base_year": int(indexed["base_year"].iloc[0]),
        "localities": int(indexed.loc[indexed["level"] == "locality", "locality"].nunique()),
    }

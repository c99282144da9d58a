"""Corrected dataset and price-index CSV export."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from lux_housing.common.fs import ensure_dir

CORRECTED_HEADERS = [
    "year",
    "level",
    "locality",
    "locality_resolved",
    "offer_count",
    "average_price",
    "average_price_sqm",
]
INDEX_SORT_KEYS = ["level", "locality", "year"]


def _write_frame(path: Path, frame: pd.DataFrame, sort_keys: list[str]) -> Path:
    ensure_dir(path.parent)
    ordered = frame.sort_values(sort_keys, kind="mergesort").reset_index(drop=True)
    ordered.to_csv(path, index=False, encoding="utf-8", lineterminator="\n")
    return path


def write_corrected_csv(path: Path, frame: pd.DataFrame) -> Path:
    columns = [column for column in CORRECTED_HEADERS if column in frame.columns]
    return _write_frame(path, frame[columns], ["level", "locality", "year"])


def read_corrected_csv(path: Path) -> pd.DataFrame:
    return pd.read_csv(path, encoding="utf-8")


def write_index_csv(path: Path, frame: pd.DataFrame) -> Path:
    return _write_frame(path, frame, INDEX_SORT_KEYS)

"""Housing-price spreadsheet download and parsing."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from lux_housing.common.errors import StageError
from lux_housing.common.fs import write_bytes
from lux_housing.common.http import HttpClient


def resolve_dataset_path(dataset_config: dict, data_dir: Path) -> Path:
    if dataset_config.get("path"):
        return Path(dataset_config["path"])
    return data_dir / "raw" / dataset_config["filename"]


def fetch_dataset(dataset_config: dict, data_dir: Path, client: HttpClient) -> dict:
    target = resolve_dataset_path(dataset_config, data_dir)
    if dataset_config.get("path"):
        if not target.exists():
            raise StageError(f"Dataset file not found: {target}")
        return {"source": "dataset", "path": str(target), "downloaded": False, "bytes": target.stat().st_size}

    payload = client.get_bytes(dataset_config["url"])
    write_bytes(target, payload)
    return {"source": "dataset", "path": str(target), "downloaded": True, "bytes": len(payload)}


def read_dataset_frame(path: Path, dataset_config: dict) -> pd.DataFrame:
    """Read the spreadsheet and rename its columns to the pipeline's names.

    Only the mapped columns are kept. Values are left untyped here; numeric
    coercion happens during cleaning so failures can be counted.
    """
    if not path.exists():
        raise StageError(f"Missing dataset input: {path}")

    if path.suffix.lower() == ".csv":
        frame = pd.read_csv(path, dtype=object, header=dataset_config.get("header_row", 0))
    else:
        frame = pd.read_excel(
            path,
            sheet_name=dataset_config.get("sheet", 0),
            header=dataset_config.get("header_row", 0),
            dtype=object,
            engine="openpyxl",
        )

    frame.columns = [str(column).strip() for column in frame.columns]
    mapping = {source: target for target, source in dataset_config["columns"].items()}
    missing = sorted(set(mapping) - set(frame.columns))
    if missing:
        raise StageError(f"Dataset is missing columns: {', '.join(missing)}. Found: {list(frame.columns)}")

    return frame[list(mapping)].rename(columns=mapping).reset_index(drop=True)

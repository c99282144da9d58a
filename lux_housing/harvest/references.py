"""Scraped reference lists of current and former communes."""

from __future__ import annotations

import re
from collections import Counter
from io import StringIO
from pathlib import Path

import pandas as pd

from lux_housing.common.constants import PROVENANCE_CURRENT, PROVENANCE_FORMER
from lux_housing.common.errors import EmptyCanonicalSetError, StageError
from lux_housing.common.fs import write_bytes
from lux_housing.common.http import HttpClient
from lux_housing.common.models import CanonicalName

_FOOTNOTE_RE = re.compile(r"\[[^\]]*\]")
_YEAR_RE = re.compile(r"(1[89]\d{2}|20\d{2})")
_SUCCESSOR_SPLIT_RE = re.compile(r"\s*(?:,|;|/|\band\b|\bet\b)\s*")


def resolve_reference_path(reference_config: dict, data_dir: Path) -> Path:
    if reference_config.get("path"):
        return Path(reference_config["path"])
    return data_dir / "raw" / "references" / reference_config["filename"]


def fetch_reference(kind: str, reference_config: dict, data_dir: Path, client: HttpClient) -> dict:
    target = resolve_reference_path(reference_config, data_dir)
    if reference_config.get("path"):
        if not target.exists():
            raise StageError(f"Reference list {kind} not found: {target}")
        return {"source": f"references.{kind}", "path": str(target), "downloaded": False}

    html = client.get_text(reference_config["url"])
    write_bytes(target, html.encode("utf-8"))
    return {"source": f"references.{kind}", "path": str(target), "downloaded": True}


def _flatten_columns(frame: pd.DataFrame) -> pd.DataFrame:
    if isinstance(frame.columns, pd.MultiIndex):
        frame = frame.copy()
        frame.columns = [str(levels[-1]) for levels in frame.columns]
    frame.columns = [_clean_cell(column) for column in frame.columns]
    return frame


def _clean_cell(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    text = _FOOTNOTE_RE.sub("", str(value))
    return " ".join(text.split())


def read_reference_table(path: Path, name_column: str) -> pd.DataFrame:
    """Return the first table in the reference file that has ``name_column``."""
    if not path.exists():
        raise StageError(f"Missing reference input: {path}")

    if path.suffix.lower() == ".csv":
        tables = [pd.read_csv(path, dtype=object)]
    else:
        html = path.read_text(encoding="utf-8")
        try:
            tables = pd.read_html(StringIO(html), flavor="lxml")
        except ValueError:
            tables = []

    for table in tables:
        table = _flatten_columns(table)
        if name_column in table.columns:
            return table
    return pd.DataFrame(columns=[name_column])


def _names(series: pd.Series, header: str) -> list[str]:
    names = []
    for value in series:
        name = _clean_cell(value)
        if name and name != header:
            names.append(name)
    return names


def parse_current_names(path: Path, reference_config: dict) -> list[str]:
    name_column = reference_config["name_column"]
    table = read_reference_table(path, name_column)
    names = sorted(set(_names(table[name_column], name_column)))
    if not names:
        raise EmptyCanonicalSetError(f"No current commune names found in {path}")
    return names


def _parse_year(value) -> int | None:
    match = _YEAR_RE.search(_clean_cell(value))
    if match is None:
        return None
    return int(match.group(1))


def _parse_successors(value) -> list[str]:
    text = _clean_cell(value)
    if not text:
        return []
    return [part for part in _SUCCESSOR_SPLIT_RE.split(text) if part]


def parse_former_entries(path: Path, reference_config: dict) -> list[CanonicalName]:
    name_column = reference_config["name_column"]
    year_column = reference_config["year_column"]
    successor_column = reference_config.get("successor_column")

    table = read_reference_table(path, name_column)
    rows: list[tuple[str, int | None, list[str]]] = []
    for _, row in table.iterrows():
        name = _clean_cell(row.get(name_column))
        if not name or name == name_column:
            continue
        year = _parse_year(row.get(year_column))
        successors = _parse_successors(row.get(successor_column)) if successor_column else []
        rows.append((name, year, successors))

    # Several former communes sharing one successor were fused into it.
    shared = Counter(successors[0] for _, _, successors in rows if len(successors) == 1)

    entries: dict[str, CanonicalName] = {}
    for name, year, successors in rows:
        single = successors[0] if len(successors) == 1 else None
        entries[name] = CanonicalName(
            name=name,
            provenance=PROVENANCE_FORMER,
            dissolved_year=year,
            successor=single,
            merged=len(successors) > 1 or (single is not None and shared[single] > 1),
        )
    return [entries[name] for name in sorted(entries)]


def current_canonical_names(names: list[str]) -> list[CanonicalName]:
    return [CanonicalName(name=name, provenance=PROVENANCE_CURRENT) for name in names]

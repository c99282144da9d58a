"""Locality-name cleaning, numeric coercion and aggregate-row routing."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import pandas as pd

from lux_housing.common.constants import NATIONAL_LABEL, NUMERIC_COLUMNS
from lux_housing.common.models import LocalityRecord

_WHITESPACE_RE = re.compile(r"\s+")
# Text cells follow the French layout: spaces group thousands, comma marks decimals.
_NUMBER_TEXT_RE = re.compile(r"-?\d+(?:[.,]\d+)?")
_DOT_THOUSANDS_RE = re.compile(r"-?\d{1,3}(?:\.\d{3})+")


@dataclass(frozen=True)
class CleanResult:
    localities: pd.DataFrame
    national: pd.DataFrame
    malformed: dict[str, int] = field(default_factory=dict)
    dropped_rows: int = 0


def _numeric_text(value):
    if not isinstance(value, str):
        return value
    text = value.replace("\xa0", "").replace("\u202f", "").replace(" ", "")
    # "450.000" could be either 450 or 450 000, so it counts as malformed.
    if not _NUMBER_TEXT_RE.fullmatch(text) or _DOT_THOUSANDS_RE.fullmatch(text):
        return None
    return text.replace(",", ".")


def coerce_numeric(series: pd.Series) -> tuple[pd.Series, int]:
    """Coerce to float, returning the series and how many present values failed."""
    coerced = pd.to_numeric(series.map(_numeric_text), errors="coerce")
    present = series.notna() & (series.astype(str).str.strip() != "")
    return coerced, int((present & coerced.isna()).sum())


def normalise_locality(raw, noise_re: re.Pattern) -> str:
    if raw is None or (isinstance(raw, float) and pd.isna(raw)):
        return ""
    cleaned = noise_re.sub("", str(raw))
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def _has_prefix(name: str, prefixes: list[str]) -> bool:
    lowered = name.casefold()
    return any(lowered.startswith(prefix.casefold()) for prefix in prefixes)


def clean_dataset(frame: pd.DataFrame, dataset_config: dict) -> CleanResult:
    noise_re = re.compile(dataset_config["noise_pattern"])
    aggregate_prefixes = list(dataset_config["aggregate_prefixes"])
    source_prefixes = list(dataset_config["source_prefixes"])

    out = frame.copy()
    malformed: dict[str, int] = {}

    out["locality"] = out["locality"].map(lambda raw: normalise_locality(raw, noise_re))
    years, _ = coerce_numeric(out["year"])
    out["year"] = years

    is_source = out["locality"].map(lambda name: _has_prefix(name, source_prefixes))
    usable = ~is_source & (out["locality"] != "") & out["year"].notna()
    dropped_rows = int((~usable).sum())
    out = out[usable].copy()
    out["year"] = out["year"].astype(int)

    for column in NUMERIC_COLUMNS:
        if column not in out.columns:
            continue
        coerced, failures = coerce_numeric(out[column])
        if column == "offer_count":
            invalid = coerced.notna() & ((coerced < 0) | (coerced % 1 != 0))
            failures += int(invalid.sum())
            coerced = coerced.mask(invalid).astype("Int64")
        out[column] = coerced
        malformed[column] = failures

    is_aggregate = out["locality"].map(lambda name: _has_prefix(name, aggregate_prefixes))
    national = out[is_aggregate].copy()
    national["locality"] = NATIONAL_LABEL
    localities = out[~is_aggregate].copy()

    return CleanResult(
        localities=localities.reset_index(drop=True),
        national=national.reset_index(drop=True),
        malformed=malformed,
        dropped_rows=dropped_rows,
    )


def _optional_float(value) -> float | None:
    if value is None or pd.isna(value):
        return None
    return float(value)


def _optional_int(value) -> int | None:
    if value is None or pd.isna(value):
        return None
    return int(value)


def country_records(national: pd.DataFrame) -> list[LocalityRecord]:
    return [
        LocalityRecord(
            year=int(row["year"]),
            locality=row["locality"],
            offer_count=_optional_int(row.get("offer_count")),
            average_price=_optional_float(row.get("average_price")),
            average_price_sqm=_optional_float(row.get("average_price_sqm")),
        )
        for _, row in national.sort_values("year").iterrows()
    ]

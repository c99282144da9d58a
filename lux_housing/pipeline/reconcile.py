"""Locality-name reconciliation against the canonical commune list.

The flow is: near-duplicate diagnostic over the cleaned names, ordered
override substitution, then an exact membership test against the canonical
set. Nothing here guesses a best match; every name without a canonical
counterpart is returned as unresolved for someone to write a rule for.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

import pandas as pd
from rapidfuzz.distance import Levenshtein

from lux_housing.common.constants import DEFAULT_MAX_DISTANCE, PROVENANCE_CURRENT
from lux_housing.common.errors import ConfigError, EmptyCanonicalSetError
from lux_housing.common.models import CanonicalName, OverrideRule, ReconcileResult
from lux_housing.harvest.dataset import read_dataset_frame, resolve_dataset_path
from lux_housing.harvest.references import (
    current_canonical_names,
    parse_current_names,
    parse_former_entries,
    resolve_reference_path,
)
from lux_housing.pipeline.clean import clean_dataset, country_records
from lux_housing.pipeline.export import write_corrected_csv
from lux_housing.pipeline.reports import write_reconciliation_report


def _has_prefix(name: str, prefixes: Iterable[str]) -> bool:
    return any(name.startswith(prefix) for prefix in prefixes)


def detect_near_duplicates(
    names: Iterable[str],
    max_distance: int = DEFAULT_MAX_DISTANCE,
    *,
    exclude_prefixes: Iterable[str] = (),
) -> set[tuple[str, str]]:
    """Return unordered pairs of distinct names within ``max_distance`` edits.

    Pairs come back as sorted tuples. Runs in quadratic time over the distinct
    names, which is fine for a few hundred communes.
    """
    prefixes = tuple(exclude_prefixes)
    distinct = sorted({name for name in names if not _has_prefix(name, prefixes)})

    pairs: set[tuple[str, str]] = set()
    for idx, left in enumerate(distinct):
        for right in distinct[idx + 1 :]:
            if Levenshtein.distance(left, right, score_cutoff=max_distance) <= max_distance:
                pairs.add((left, right))
    return pairs


def _apply_first_match(name: str, rules: Sequence[OverrideRule]) -> str:
    for rule in rules:
        if rule.matches(name):
            return rule.replacement
    return name


def compile_rules(rules: Iterable[OverrideRule]) -> tuple[OverrideRule, ...]:
    """Freeze the rule order and reject tables that are not idempotent.

    A replacement must come back unchanged when run through the table,
    otherwise a second pass would rewrite already corrected names.
    """
    compiled = tuple(rules)
    for idx, rule in enumerate(compiled):
        rewritten = _apply_first_match(rule.replacement, compiled)
        if rewritten != rule.replacement:
            raise ConfigError(
                f"Override rule {idx} ({rule.pattern!r} -> {rule.replacement!r}) "
                f"is rewritten again to {rewritten!r}"
            )
    return compiled


def apply_overrides(names: Sequence[str], rules: Iterable[OverrideRule]) -> list[str]:
    compiled = compile_rules(rules)
    return [_apply_first_match(name, compiled) for name in names]


def _canonical_label(entry: CanonicalName | str) -> str:
    if isinstance(entry, CanonicalName):
        return entry.name
    return entry


def reconcile(localities: Iterable[str], canonical: Iterable[CanonicalName | str]) -> ReconcileResult:
    canonical_names = frozenset(_canonical_label(entry) for entry in canonical)
    if not canonical_names:
        raise EmptyCanonicalSetError("Canonical commune set is empty; nothing to reconcile against")

    names = frozenset(localities)
    matched = names & canonical_names
    return ReconcileResult(matched=matched, unresolved=names - matched)


def in_scope(entry: CanonicalName, first_year: int | None) -> bool:
    """Former communes count only if they still existed during the dataset's period."""
    if not entry.is_former:
        return True
    if entry.dissolved_year is None or first_year is None:
        return True
    return entry.dissolved_year > first_year


def build_canonical_set(
    current: Iterable[CanonicalName | str],
    former: Iterable[CanonicalName],
    *,
    first_year: int | None,
    rules: Iterable[OverrideRule] = (),
) -> frozenset[CanonicalName]:
    compiled = compile_rules(rules)

    def harmonise(name: str | None) -> str | None:
        if name is None:
            return None
        return _apply_first_match(name, compiled)

    entries: dict[str, CanonicalName] = {}
    for entry in current:
        if not isinstance(entry, CanonicalName):
            entry = CanonicalName(name=entry, provenance=PROVENANCE_CURRENT)
        name = harmonise(entry.name)
        entries[name] = CanonicalName(name=name, provenance=entry.provenance)

    for entry in former:
        if not in_scope(entry, first_year):
            continue
        name = harmonise(entry.name)
        if name in entries:
            continue
        entries[name] = CanonicalName(
            name=name,
            provenance=entry.provenance,
            dissolved_year=entry.dissolved_year,
            successor=harmonise(entry.successor),
            merged=entry.merged,
        )

    if not entries:
        raise EmptyCanonicalSetError("Reference lists produced no canonical names")
    return frozenset(entries.values())


def apply_overrides_to_frame(frame: pd.DataFrame, rules: Iterable[OverrideRule]) -> pd.DataFrame:
    compiled = compile_rules(rules)
    distinct = sorted(frame["locality"].unique())
    corrections = dict(zip(distinct, apply_overrides(distinct, compiled)))
    out = frame.copy()
    out["locality"] = out["locality"].map(corrections)
    return out


def mark_resolved(frame: pd.DataFrame, result: ReconcileResult) -> pd.DataFrame:
    out = frame.copy()
    out["locality_resolved"] = out["locality"].isin(result.matched)
    return out


def run_reconcile(
    pipeline_config: dict,
    rules: Iterable[OverrideRule],
    data_dir: Path,
    run_id: str,
) -> dict:
    dataset_config = pipeline_config["dataset"]
    references = pipeline_config["references"]
    max_distance = pipeline_config["reconcile"]["max_distance"]
    compiled = compile_rules(rules)

    raw = read_dataset_frame(resolve_dataset_path(dataset_config, data_dir), dataset_config)
    cleaned = clean_dataset(raw, dataset_config)
    localities = cleaned.localities

    first_year = int(localities["year"].min()) if not localities.empty else None
    current_names = parse_current_names(
        resolve_reference_path(references["current"], data_dir), references["current"]
    )
    former_entries = parse_former_entries(
        resolve_reference_path(references["former"], data_dir), references["former"]
    )
    canonical = build_canonical_set(
        current_canonical_names(current_names),
        former_entries,
        first_year=first_year,
        rules=compiled,
    )

    raw_names = set(localities["locality"])
    near_duplicates = detect_near_duplicates(
        raw_names,
        max_distance,
        exclude_prefixes=dataset_config["aggregate_prefixes"],
    )

    corrected = apply_overrides_to_frame(localities, compiled)
    result = reconcile(set(corrected["locality"]), canonical)
    corrected = mark_resolved(corrected, result)
    corrected["level"] = "locality"

    national = cleaned.national.copy()
    national["locality_resolved"] = True
    national["level"] = "country"

    output_path = data_dir / "out" / pipeline_config["output"]["corrected_filename"]
    write_corrected_csv(output_path, pd.concat([corrected, national], ignore_index=True))

    rewritten = {
        raw_name: fixed
        for raw_name, fixed in zip(sorted(raw_names), apply_overrides(sorted(raw_names), compiled))
        if raw_name != fixed
    }
    canonical_by_name = {entry.name: entry for entry in canonical}
    former_matched = [
        canonical_by_name[name].to_dict()
        for name in sorted(result.matched)
        if canonical_by_name[name].is_former
    ]

    payload = {
        "run_id": run_id,
        "counts": {
            "rows_in": len(raw),
            "dropped_rows": cleaned.dropped_rows,
            "locality_rows": len(corrected),
            "national_rows": len(national),
            "canonical_names": len(canonical),
            "distinct_localities": len(result.matched) + len(result.unresolved),
            "matched": len(result.matched),
            "unresolved": len(result.unresolved),
        },
        "first_year": first_year,
        "max_distance": max_distance,
        "malformed_values": dict(sorted(cleaned.malformed.items())),
        "overrides_applied": dict(sorted(rewritten.items())),
        "near_duplicates": [list(pair) for pair in sorted(near_duplicates)],
        "former_communes_matched": former_matched,
        "country_level": [record.to_dict() for record in country_records(cleaned.national)],
        "unresolved": sorted(result.unresolved),
    }
    write_reconciliation_report(data_dir, payload)
    return payload

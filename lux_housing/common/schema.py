"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from lux_housing.common.constants import DATASET_COLUMNS, MATCH_KINDS
from lux_housing.common.errors import ConfigError


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"Expected a mapping for {ctx}")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_has_location(obj: dict, ctx: str) -> None:
    if not obj.get("url") and not obj.get("path"):
        raise ConfigError(f"{ctx} needs either url or path")


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"dataset", "references", "reconcile", "index", "charts", "output"}
    _assert_required_keys(cfg, top_required, "pipeline config")
    _assert_no_unknown_keys(cfg, top_required, "pipeline config", allow_unknown)

    dataset = cfg["dataset"]
    _assert_required_keys(
        dataset,
        {"filename", "columns", "noise_pattern", "aggregate_prefixes", "source_prefixes"},
        "dataset",
    )
    _assert_has_location(dataset, "dataset")
    _assert_required_keys(dataset["columns"], {"year", "locality"}, "dataset.columns")
    unknown_columns = set(dataset["columns"]) - set(DATASET_COLUMNS)
    if unknown_columns:
        raise ConfigError(f"Unknown dataset columns: {', '.join(sorted(unknown_columns))}")

    _assert_required_keys(cfg["references"], {"current", "former"}, "references")
    for kind in ("current", "former"):
        ref = cfg["references"][kind]
        _assert_required_keys(ref, {"filename", "name_column"}, f"references.{kind}")
        _assert_has_location(ref, f"references.{kind}")
    _assert_required_keys(cfg["references"]["former"], {"year_column"}, "references.former")

    _assert_required_keys(cfg["reconcile"], {"max_distance"}, "reconcile")
    max_distance = cfg["reconcile"]["max_distance"]
    if not isinstance(max_distance, int) or max_distance < 0:
        raise ConfigError("reconcile.max_distance must be a non-negative integer")

    _assert_required_keys(cfg["index"], {"value_column"}, "index")

    if not isinstance(cfg["charts"], list):
        raise ConfigError("charts must be a list")
    chart_ids: list[str] = []
    for idx, chart in enumerate(cfg["charts"]):
        _assert_required_keys(chart, {"id", "title", "localities"}, f"charts[{idx}]")
        chart_ids.append(chart["id"])
    dupes = {chart_id for chart_id in chart_ids if chart_ids.count(chart_id) > 1}
    if dupes:
        raise ConfigError(f"Duplicate chart ids: {', '.join(sorted(dupes))}")

    _assert_required_keys(cfg["output"], {"corrected_filename", "index_filename"}, "output")
    return cfg


def validate_overrides_config(cfg: dict | None) -> dict:
    if cfg is None:
        return {"rules": []}
    _assert_required_keys(cfg, {"rules"}, "overrides")
    rules = cfg["rules"] or []
    if not isinstance(rules, list):
        raise ConfigError("overrides.rules must be a list")
    for idx, rule in enumerate(rules):
        _assert_required_keys(rule, {"pattern", "replacement"}, f"rules[{idx}]")
        _assert_no_unknown_keys(rule, {"pattern", "replacement", "match"}, f"rules[{idx}]", False)
        if rule.get("match", "exact") not in MATCH_KINDS:
            raise ConfigError(f"rules[{idx}].match must be one of: {', '.join(MATCH_KINDS)}")
    return {"rules": rules}

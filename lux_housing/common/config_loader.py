"""Configuration loading and validation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lux_housing.common.errors import ConfigError
from lux_housing.common.fs import read_yaml
from lux_housing.common.models import OverrideRule
from lux_housing.common.schema import validate_overrides_config, validate_pipeline_config


@dataclass(frozen=True)
class ConfigBundle:
    pipeline: dict
    overrides: tuple[OverrideRule, ...]


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> Any:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    return _deep_merge(base, overlay)


def build_override_rules(cfg: dict) -> tuple[OverrideRule, ...]:
    rules: list[OverrideRule] = []
    for idx, rule in enumerate(cfg["rules"]):
        try:
            rules.append(
                OverrideRule(
                    pattern=str(rule["pattern"]),
                    replacement=str(rule["replacement"]),
                    match=rule.get("match", "exact"),
                )
            )
        except re.error as exc:
            raise ConfigError(f"Invalid regex in rules[{idx}]: {exc}") from exc
    return tuple(rules)


def load_all_configs(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> ConfigBundle:
    def overlay_for(name: str) -> Path | None:
        if overlay_config_dir is None:
            return None
        return overlay_config_dir / name

    pipeline = validate_pipeline_config(
        _load_yaml_with_overlay(config_dir / "pipeline.yml", overlay_for("pipeline.yml")),
        allow_unknown=allow_unknown,
    )
    # Rule order is significant, so an overlay replaces the whole list.
    overrides = validate_overrides_config(
        _load_yaml_with_overlay(config_dir / "overrides.yml", overlay_for("overrides.yml"))
    )
    return ConfigBundle(pipeline=pipeline, overrides=build_override_rules(overrides))

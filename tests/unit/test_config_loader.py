from pathlib import Path

import pytest

from lux_housing.common.config_loader import load_all_configs
from lux_housing.common.errors import ConfigError
from lux_housing.common.models import OverrideRule


def test_load_all_configs_from_repo_config_dir():
    bundle = load_all_configs(Path("config"))
    assert bundle.pipeline["reconcile"]["max_distance"] == 2
    assert len(bundle.pipeline["charts"]) == 5
    assert bundle.overrides[0] == OverrideRule(pattern="Luxembourg-Ville", replacement="Luxembourg")
    assert bundle.overrides[1].match == "regex"


def test_load_all_configs_applies_overlay_values(tmp_path: Path):
    (tmp_path / "pipeline.yml").write_text(
        """reconcile:
  max_distance: 1
dataset:
  path: /tmp/prices.xlsx
""",
        encoding="utf-8",
    )
    (tmp_path / "overrides.yml").write_text(
        """rules:
  - pattern: "Kaerjeng"
    replacement: "Käerjeng"
""",
        encoding="utf-8",
    )

    bundle = load_all_configs(Path("config"), overlay_config_dir=tmp_path)

    assert bundle.pipeline["reconcile"]["max_distance"] == 1
    assert bundle.pipeline["dataset"]["path"] == "/tmp/prices.xlsx"
    assert bundle.pipeline["dataset"]["columns"]["locality"] == "Commune"
    assert bundle.overrides == (OverrideRule(pattern="Kaerjeng", replacement="Käerjeng"),)


def test_load_all_configs_ignores_empty_overlay_file(tmp_path: Path):
    (tmp_path / "pipeline.yml").write_text("", encoding="utf-8")
    bundle = load_all_configs(Path("config"), overlay_config_dir=tmp_path)
    assert bundle.pipeline["reconcile"]["max_distance"] == 2


def test_load_all_configs_rejects_invalid_regex(tmp_path: Path):
    (tmp_path / "overrides.yml").write_text(
        """rules:
  - pattern: "P(tange"
    replacement: "Pétange"
    match: regex
""",
        encoding="utf-8",
    )
    with pytest.raises(ConfigError):
        load_all_configs(Path("config"), overlay_config_dir=tmp_path)


def test_load_all_configs_missing_file(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_all_configs(tmp_path)

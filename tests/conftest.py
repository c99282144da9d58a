from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest
import yaml

CURRENT_HTML = """<html><body>
<table><thead><tr><th>Commune</th><th>Canton</th></tr></thead><tbody>
<tr><td>Luxembourg</td><td>Luxembourg</td></tr>
<tr><td>Pétange</td><td>Esch-sur-Alzette</td></tr>
<tr><td>Mamer</td><td>Capellen</td></tr>
<tr><td>Kaerjeng</td><td>Capellen</td></tr>
<tr><td>Wiltz</td><td>Wiltz</td></tr>
</tbody></table>
</body></html>
"""

FORMER_HTML = """<html><body>
<table><thead><tr><th>Former commune</th><th>Date</th><th>Merged into</th></tr></thead><tbody>
<tr><td>Bascharage</td><td>1 January 2012</td><td>Kaerjeng</td></tr>
<tr><td>Clemency</td><td>1 January 2012</td><td>Kaerjeng</td></tr>
<tr><td>Eschweiler</td><td>1 January 2015</td><td>Wiltz</td></tr>
<tr><td>Bigonville</td><td>1 January 1979</td><td>Rambrouch</td></tr>
</tbody></table>
</body></html>
"""

DATASET_ROWS = [
    (2010, "Luxembourg-Ville", 900, 600000, 7000),
    (2010, "P?tange", 120, 380000, 4100),
    (2010, "Mamer (1)", 60, 550000, 5600),
    (2010, "Bascharage", 40, "*", 3900),
    (2010, "Eschweiler", 5, 300000, 3000),
    (2010, "Total pays", 3000, 500000, 5000),
    (2011, "Luxembourg-Ville", 950, 660000, 7500),
    (2011, "Pétange", 130, 399000, 4300),
    (2011, "Mamer", 65, 572000, 5800),
    (2011, "Bascharage", 45, 410000, 4000),
    (2011, "Eschweiler", 6, 315000, 3100),
    (2011, "Total pays", 3100, 530000, 5300),
    (2012, "Luxembourg-Ville", 990, 690000, 7900),
    (2012, "Pétange", 140, 418000, 4500),
    (2012, "Mamer", 70, 600000, 6000),
    (2012, "Kaerjeng", 90, 430000, 4200),
    (2012, "Eschweiler", 6, 320000, 3150),
    (2012, "Total pays", 3200, 555000, 5500),
    (2012, "Source : Observatoire de l'Habitat", None, None, None),
]

DATASET_COLUMNS = [
    "Année",
    "Commune",
    "Nombre d'offres",
    "Prix moyen annoncé en Euros courants",
    "Prix moyen annoncé au m² en Euros courants",
]

CHARTS = [
    {"id": "capital", "title": "Capital", "localities": ["Luxembourg"], "metric": "value"},
    {"id": "south", "title": "South", "localities": ["Pétange", "Käerjeng", "Bascharage"]},
    {"id": "west", "title": "West", "localities": ["Mamer"]},
    {"id": "north", "title": "North", "localities": ["Eschweiler", "Wiltz"]},
    {"id": "all", "title": "All", "localities": ["Luxembourg", "Pétange", "Mamer"]},
]


def write_pipeline_inputs(base: Path, *, extra_rows: list[tuple] | None = None) -> Path:
    """Write local inputs plus an overlay config pointing at them; returns the overlay dir."""
    inputs = base / "inputs"
    overlay = base / "overlay"
    inputs.mkdir(parents=True, exist_ok=True)
    overlay.mkdir(parents=True, exist_ok=True)

    rows = DATASET_ROWS + (extra_rows or [])
    pd.DataFrame(rows, columns=DATASET_COLUMNS).to_excel(inputs / "prices.xlsx", index=False)
    (inputs / "current.html").write_text(CURRENT_HTML, encoding="utf-8")
    (inputs / "former.html").write_text(FORMER_HTML, encoding="utf-8")

    pipeline = {
        "dataset": {"url": None, "path": str(inputs / "prices.xlsx")},
        "references": {
            "current": {"url": None, "path": str(inputs / "current.html")},
            "former": {"url": None, "path": str(inputs / "former.html")},
        },
        "charts": CHARTS,
    }
    with (overlay / "pipeline.yml").open("w", encoding="utf-8") as f:
        yaml.safe_dump(pipeline, f, allow_unicode=True)
    return overlay


@pytest.fixture
def pipeline_overlay(tmp_path: Path) -> Path:
    return write_pipeline_inputs(tmp_path)


@pytest.fixture
def make_pipeline_overlay(tmp_path: Path):
    def _make(name: str = "custom", **kwargs) -> Path:
        return write_pipeline_inputs(tmp_path / name, **kwargs)

    return _make

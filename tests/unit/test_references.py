from pathlib import Path

import pytest

from lux_housing.common.errors import EmptyCanonicalSetError, StageError
from lux_housing.harvest.references import (
    current_canonical_names,
    parse_current_names,
    parse_former_entries,
    read_reference_table,
)

CURRENT_HTML = """<html><body>
<table><thead><tr><th>Canton</th><th>Area</th></tr></thead>
<tbody><tr><td>Capellen</td><td>12</td></tr></tbody></table>
<table><thead><tr><th>Commune</th><th>Canton</th></tr></thead>
<tbody>
<tr><td>Luxembourg[a]</td><td>Luxembourg</td></tr>
<tr><td>Kaerjeng</td><td>Capellen</td></tr>
<tr><td>Pétange</td><td>Esch-sur-Alzette</td></tr>
<tr><td>Commune</td><td>Canton</td></tr>
</tbody></table>
</body></html>
"""

FORMER_HTML = """<html><body>
<table><thead><tr><th>Former commune</th><th>Date</th><th>Merged into</th></tr></thead>
<tbody>
<tr><td>Bascharage</td><td>1 January 2012</td><td>Kaerjeng</td></tr>
<tr><td>Clemency</td><td>1 January 2012</td><td>Kaerjeng</td></tr>
<tr><td>Eschweiler</td><td>2015</td><td>Wiltz</td></tr>
<tr><td>Splitville</td><td>2018</td><td>Alpha, Beta</td></tr>
<tr><td>Lostville</td><td>unknown</td><td></td></tr>
</tbody></table>
</body></html>
"""

CURRENT_CONFIG = {"filename": "current.html", "name_column": "Commune"}
FORMER_CONFIG = {
    "filename": "former.html",
    "name_column": "Former commune",
    "year_column": "Date",
    "successor_column": "Merged into",
}


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_current_names_picks_matching_table_and_strips_footnotes(tmp_path: Path):
    path = _write(tmp_path / "current.html", CURRENT_HTML)
    assert parse_current_names(path, CURRENT_CONFIG) == ["Kaerjeng", "Luxembourg", "Pétange"]


def test_parse_current_names_empty_reference_is_fatal(tmp_path: Path):
    path = _write(tmp_path / "current.html", "<html><body><p>moved</p></body></html>")
    with pytest.raises(EmptyCanonicalSetError):
        parse_current_names(path, CURRENT_CONFIG)


def test_parse_former_entries_reads_years_and_merge_history(tmp_path: Path):
    path = _write(tmp_path / "former.html", FORMER_HTML)
    entries = {entry.name: entry for entry in parse_former_entries(path, FORMER_CONFIG)}

    assert sorted(entries) == ["Bascharage", "Clemency", "Eschweiler", "Lostville", "Splitville"]
    assert entries["Bascharage"].dissolved_year == 2012
    assert entries["Bascharage"].successor == "Kaerjeng"
    assert entries["Bascharage"].merged is True
    assert entries["Clemency"].successor == "Kaerjeng"
    assert entries["Clemency"].merged is True
    assert entries["Eschweiler"].successor == "Wiltz"
    assert entries["Eschweiler"].merged is False
    assert entries["Splitville"].successor is None
    assert entries["Splitville"].merged is True
    assert entries["Lostville"].dissolved_year is None
    assert all(entry.is_former for entry in entries.values())


def test_read_reference_table_accepts_csv(tmp_path: Path):
    path = _write(tmp_path / "current.csv", "Commune,Canton\nMamer,Capellen\nStrassen,Luxembourg\n")
    table = read_reference_table(path, "Commune")
    assert table["Commune"].tolist() == ["Mamer", "Strassen"]


def test_read_reference_table_page_without_tables_is_empty(tmp_path: Path):
    path = _write(tmp_path / "current.html", "<html><body><p>Page moved</p></body></html>")
    table = read_reference_table(path, "Commune")
    assert table.empty
    assert list(table.columns) == ["Commune"]


def test_read_reference_table_missing_file_is_stage_error(tmp_path: Path):
    with pytest.raises(StageError):
        read_reference_table(tmp_path / "absent.html", "Commune")


def test_current_canonical_names_are_tagged_current():
    names = current_canonical_names(["Mamer"])
    assert names[0].name == "Mamer"
    assert not names[0].is_former

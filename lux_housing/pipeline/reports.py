"""Reconciliation report and run summary."""

from __future__ import annotations

from pathlib import Path

from lux_housing.common.fs import write_json


def reports_dir(data_dir: Path) -> Path:
    return data_dir / "out" / "reports"


def write_reconciliation_report(data_dir: Path, payload: dict) -> Path:
    report_path = reports_dir(data_dir) / "reconciliation.json"
    write_json(report_path, payload)
    return report_path


def write_run_summary(
    data_dir: Path,
    run_id: str,
    stages: list[str],
    stage_results: dict[str, dict],
    failed_stages: list[str],
) -> Path:
    warnings: list[str] = []
    errors = [f"STAGE_FAILED:{stage}" for stage in failed_stages]

    reconcile_result = stage_results.get("reconcile", {})
    unresolved = reconcile_result.get("unresolved", [])
    if unresolved:
        warnings.append("UNRESOLVED_LOCALITIES_PRESENT")
    if reconcile_result.get("near_duplicates"):
        warnings.append("NEAR_DUPLICATE_NAMES_PRESENT")
    if sum(reconcile_result.get("malformed_values", {}).values()):
        warnings.append("MALFORMED_VALUES_COERCED")

    fetch_result = stage_results.get("fetch", {})
    if fetch_result.get("stale_sources"):
        warnings.append("STALE_INPUTS_REUSED")

    charts_result = stage_results.get("charts", {})
    if charts_result.get("skipped_localities"):
        warnings.append("CHART_LOCALITIES_MISSING")

    status = "success"
    if errors:
        status = "error"
    elif warnings:
        status = "partial"

    payload = {
        "run_id": run_id,
        "status": status,
        "stages": stages,
        "totals": {
            "matched": reconcile_result.get("counts", {}).get("matched", 0),
            "unresolved": len(unresolved),
            "near_duplicates": len(reconcile_result.get("near_duplicates", [])),
            "index_rows": stage_results.get("index", {}).get("rows_out", 0),
            "charts": len(charts_result.get("charts", [])),
        },
        "unresolved": unresolved,
        "warnings": warnings,
        "errors": errors,
    }
    summary_path = reports_dir(data_dir) / "run_summary.json"
    write_json(summary_path, payload)
    return summary_path

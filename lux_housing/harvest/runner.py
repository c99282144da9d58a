"""Fetch orchestration with fail-soft semantics."""

from __future__ import annotations

from pathlib import Path

from lux_housing.common.errors import StageError
from lux_housing.common.http import HttpClient
from lux_housing.harvest.dataset import fetch_dataset, resolve_dataset_path
from lux_housing.harvest.references import fetch_reference, resolve_reference_path


def run_fetch(pipeline_config: dict, data_dir: Path, client: HttpClient | None = None) -> dict:
    """Download every input, keeping a previously fetched copy when a source fails.

    Raises StageError when a source fails and no earlier copy exists.
    """
    owns_client = client is None
    client = client or HttpClient()

    targets = [
        (
            "dataset",
            resolve_dataset_path(pipeline_config["dataset"], data_dir),
            lambda: fetch_dataset(pipeline_config["dataset"], data_dir, client),
        )
    ]
    for kind in ("current", "former"):
        reference_config = pipeline_config["references"][kind]
        targets.append(
            (
                f"references.{kind}",
                resolve_reference_path(reference_config, data_dir),
                lambda kind=kind, reference_config=reference_config: fetch_reference(
                    kind, reference_config, data_dir, client
                ),
            )
        )

    results: dict[str, dict] = {}
    failures: list[str] = []
    stale: list[str] = []
    try:
        for source, cached_path, fetch in targets:
            try:
                results[source] = fetch()
            except Exception:
                failures.append(source)
                if cached_path.exists():
                    stale.append(source)
    finally:
        if owns_client:
            client.close()

    missing = [source for source in failures if source not in stale]
    if missing:
        raise StageError(f"Sources failed with no cached copy: {', '.join(missing)}")

    return {
        "results": results,
        "failed_sources": failures,
        "stale_sources": stale,
    }

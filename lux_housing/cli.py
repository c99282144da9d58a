"""CLI entrypoint for the Luxembourg housing-price pipeline."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from lux_housing.common.config_loader import ConfigBundle, load_all_configs
from lux_housing.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, STAGES
from lux_housing.common.errors import ContractError, PipelineError
from lux_housing.common.logging import build_logger, close_logger, log_event, log_warning
from lux_housing.common.time_utils import generate_run_id
from lux_housing.harvest.runner import run_fetch
from lux_housing.pipeline.charts import run_charts
from lux_housing.pipeline.price_index import run_index
from lux_housing.pipeline.reconcile import run_reconcile
from lux_housing.pipeline.reports import write_run_summary


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all"])
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--strict", action="store_true")
    return parser.parse_args(argv)


def execute_stage(stage: str, bundle: ConfigBundle, data_dir: Path, run_id: str) -> dict:
    if stage == "fetch":
        return run_fetch(bundle.pipeline, data_dir)
    if stage == "reconcile":
        return run_reconcile(bundle.pipeline, bundle.overrides, data_dir, run_id)
    if stage == "index":
        return run_index(bundle.pipeline, data_dir)
    if stage == "charts":
        return run_charts(bundle.pipeline, data_dir)
    raise ValueError(f"Unknown stage: {stage}")


def _log_stage_findings(logger, run_id: str, stage: str, result: dict) -> bool:
    """Log expected-but-notable outcomes; returns True when the run is partial."""
    partial = False
    if stage == "reconcile":
        if result["near_duplicates"]:
            log_warning(
                logger,
                f"near-duplicate locality names: {result['near_duplicates']}",
                run_id=run_id,
                stage=stage,
                event="NEAR_DUPLICATES",
                status="warning",
            )
        if result["unresolved"]:
            partial = True
            log_warning(
                logger,
                f"unresolved localities need an override rule: {result['unresolved']}",
                run_id=run_id,
                stage=stage,
                event="UNRESOLVED_LOCALITIES",
                status="warning",
                rows_out=len(result["unresolved"]),
            )
    elif stage == "fetch" and result["stale_sources"]:
        log_warning(
            logger,
            f"reusing previously fetched inputs: {result['stale_sources']}",
            run_id=run_id,
            stage=stage,
            event="STALE_INPUTS",
            status="warning",
        )
    elif stage == "charts" and result["skipped_localities"]:
        log_warning(
            logger,
            f"chart localities without data: {result['skipped_localities']}",
            run_id=run_id,
            stage=stage,
            event="CHART_LOCALITIES_MISSING",
            status="warning",
        )
    return partial


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    try:
        bundle = load_all_configs(config_dir, overlay_config_dir=overlay_config_dir)
        stages = list(STAGES) if args.command == "all" else [args.command]

        stage_results: dict[str, dict] = {}
        failed_stages: list[str] = []
        had_partial_failure = False
        exit_code = None

        for stage in stages:
            log_event(logger, "stage start", run_id=run_id, stage=stage, event="STAGE_START", status="ok")
            started = time.monotonic()
            try:
                result = execute_stage(stage, bundle, data_dir, run_id)
            except PipelineError as exc:
                had_partial_failure = True
                failed_stages.append(stage)
                log_event(
                    logger,
                    f"stage failed: {exc}",
                    run_id=run_id,
                    stage=stage,
                    event="STAGE_FAIL",
                    status="error",
                    error_code=exc.error_code,
                )
                if isinstance(exc, ContractError) or args.strict:
                    exit_code = EXIT_HARD_FAIL
                    break
                continue
            except Exception as exc:
                had_partial_failure = True
                failed_stages.append(stage)
                logger.exception(
                    f"unexpected failure: {exc}",
                    extra={
                        "run_id": run_id,
                        "stage": stage,
                        "event": "STAGE_FAIL",
                        "status": "error",
                        "error_code": "UNEXPECTED_ERROR",
                    },
                )
                if args.strict:
                    exit_code = EXIT_HARD_FAIL
                    break
                continue

            stage_results[stage] = result
            if _log_stage_findings(logger, run_id, stage, result):
                had_partial_failure = True
                if args.strict:
                    exit_code = EXIT_HARD_FAIL
            log_event(
                logger,
                "stage end",
                run_id=run_id,
                stage=stage,
                event="STAGE_END",
                status="ok",
                duration_ms=int((time.monotonic() - started) * 1000),
                rows_in=result.get("rows_in"),
                rows_out=result.get("rows_out"),
            )
            if exit_code is not None:
                break

        write_run_summary(
            data_dir,
            run_id=run_id,
            stages=stages,
            stage_results=stage_results,
            failed_stages=failed_stages,
        )
        if exit_code is not None:
            return exit_code
        if had_partial_failure:
            return EXIT_PARTIAL
        return EXIT_SUCCESS
    finally:
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError as exc:
        print(f"{exc.error_code}: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())

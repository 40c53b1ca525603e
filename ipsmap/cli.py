"""CLI entrypoint for the IPS establishments map data pipeline."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from ipsmap.common.config_loader import ConfigBundle, load_all_configs
from ipsmap.common.constants import EXIT_EMPTY, EXIT_HARD_FAIL, EXIT_SUCCESS, STAGES
from ipsmap.common.errors import PipelineError
from ipsmap.common.http import HttpClient
from ipsmap.common.ids import generate_run_id
from ipsmap.common.logging import build_logger, close_logger, log_event
from ipsmap.common.models import EstablishmentType
from ipsmap.common.time_utils import elapsed_ms, parse_run_date
from ipsmap.pipeline.export import read_intermediate, write_canonical_csv, write_geojson, write_intermediate
from ipsmap.pipeline.loader import load_all_sources, read_snapshots, snapshot_sources, source_specs_from_config
from ipsmap.pipeline.reconcile import run_reconcile
from ipsmap.pipeline.reports import write_reconcile_report
from ipsmap.pipeline.session import FilterCriteria, build_session, filter_establishments


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all"])
    parser.add_argument("--run-date", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])

    filters = parser.add_argument_group("export filters")
    filters.add_argument("--type", dest="types", action="append", default=[], choices=[t.value for t in EstablishmentType])
    filters.add_argument("--sector", dest="sectors", action="append", default=[])
    filters.add_argument("--region", dest="regions", action="append", default=[])
    filters.add_argument("--department", dest="departments", action="append", default=[])
    filters.add_argument("--ips-min", type=float, default=None)
    filters.add_argument("--ips-max", type=float, default=None)
    filters.add_argument("--zoom", type=float, default=None, help="embed marker styles computed for this zoom")
    return parser.parse_args(argv)


def criteria_from_args(args: argparse.Namespace) -> FilterCriteria:
    return FilterCriteria.build(
        types=args.types,
        sectors=args.sectors,
        regions=args.regions,
        departments=args.departments,
        ips_min=args.ips_min,
        ips_max=args.ips_max,
    )


def _intermediate_path(data_dir: Path) -> Path:
    return data_dir / "intermediate" / "establishments.json"


def execute_stage(
    stage: str,
    args: argparse.Namespace,
    bundle: ConfigBundle,
    data_dir: Path,
    run_id: str,
    run_date: str,
) -> dict:
    if stage == "fetch":
        specs = source_specs_from_config(bundle.sources)
        http_cfg = bundle.sources["http"]
        sources = load_all_sources(specs, lambda: HttpClient.from_config(http_cfg), Path(args.config_dir))
        snapshot_sources(data_dir, sources, run_id)
        return {"rows_out": sum(len(rows) for rows in sources.values())}
    if stage == "reconcile":
        sources = read_snapshots(data_dir)
        result = run_reconcile(
            sources["ips_ecoles"],
            sources["ips_colleges"],
            sources["ips_lycees"],
            sources["localisations"],
            sources["effectifs"],
            fields=bundle.fields,
        )
        write_intermediate(_intermediate_path(data_dir), result.establishments, run_id=run_id)
        write_reconcile_report(data_dir, run_id=run_id, run_date=run_date, result=result)
        return {"rows_in": sum(result.rows_in.values()), "rows_out": len(result.establishments)}
    if stage == "export":
        session = build_session(read_intermediate(_intermediate_path(data_dir)), run_id=run_id)
        selected = filter_establishments(session, criteria_from_args(args))
        write_geojson(
            data_dir / "out" / "establishments.geojson",
            selected,
            zoom=args.zoom,
            styling=bundle.styling,
        )
        write_canonical_csv(data_dir / "out" / "establishments.csv", selected)
        return {"rows_in": len(session), "rows_out": len(selected)}
    raise ValueError(f"Unknown stage: {stage}")


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    run_date = parse_run_date(args.run_date)
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    try:
        try:
            bundle = load_all_configs(config_dir, overlay_config_dir=overlay_config_dir)
        except PipelineError as exc:
            log_event(logger, "config load failed", run_id=run_id, event="CONFIG_FAIL", status="error", error_code=exc.error_code)
            return EXIT_HARD_FAIL

        stages = STAGES if args.command == "all" else (args.command,)
        counts: dict = {}
        for stage in stages:
            log_event(logger, "stage start", run_id=run_id, stage=stage, event="STAGE_START", status="ok")
            started = time.perf_counter()
            try:
                counts = execute_stage(stage, args, bundle, data_dir, run_id, run_date)
            except PipelineError as exc:
                log_event(
                    logger,
                    f"stage {stage} failed: {exc}",
                    run_id=run_id,
                    stage=stage,
                    event="STAGE_FAIL",
                    status="error",
                    error_code=exc.error_code,
                )
                return EXIT_HARD_FAIL
            except Exception:
                log_event(
                    logger,
                    f"unexpected failure in stage {stage}",
                    run_id=run_id,
                    stage=stage,
                    event="STAGE_FAIL",
                    status="error",
                    error_code="UNEXPECTED_ERROR",
                )
                return EXIT_HARD_FAIL
            log_event(
                logger,
                "stage end",
                run_id=run_id,
                stage=stage,
                event="STAGE_END",
                status="ok",
                duration_ms=elapsed_ms(started),
                **counts,
            )
            if stage in ("reconcile", "export") and counts.get("rows_out") == 0:
                return EXIT_EMPTY
        return EXIT_SUCCESS
    finally:
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except Exception:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())

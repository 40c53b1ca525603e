"""Reconciliation report."""

from __future__ import annotations

from pathlib import Path

from ipsmap.common.fs import write_json
from ipsmap.pipeline.reconcile import ReconcileResult


def _ips_summary(result: ReconcileResult) -> dict:
    values = [e.ips for e in result.establishments]
    if not values:
        return {"min": None, "mean": None, "max": None}
    return {
        "min": round(min(values), 1),
        "mean": round(sum(values) / len(values), 1),
        "max": round(max(values), 1),
    }


def build_reconcile_report(result: ReconcileResult, *, run_id: str, run_date: str) -> dict:
    total_in = sum(result.rows_in.values())
    total_out = len(result.establishments)
    with_enrollment = total_out - result.enrollment_misses

    dropped_totals: dict[str, int] = {}
    for per_reason in result.dropped.values():
        for reason, count in per_reason.items():
            dropped_totals[reason] = dropped_totals.get(reason, 0) + count

    return {
        "run_id": run_id,
        "run_date": run_date,
        "status": "success" if total_out else "empty",
        "counts": {
            "ips_rows": total_in,
            "establishments": total_out,
            "localization_index": result.localization_index_size,
            "enrollment_index": result.enrollment_index_size,
            "with_enrollment": with_enrollment,
            "without_enrollment": result.enrollment_misses,
        },
        "by_type": {
            name: {
                "rows_in": result.rows_in.get(name, 0),
                "rows_out": result.rows_out.get(name, 0),
                "dropped": result.dropped.get(name, {}),
            }
            for name in result.rows_in
        },
        "dropped": dropped_totals,
        "quality": {
            "join_rate_percent": 0.0 if total_in == 0 else round((total_out / total_in) * 100, 2),
            "enrollment_coverage_percent": 0.0
            if total_out == 0
            else round((with_enrollment / total_out) * 100, 2),
        },
        "ips": _ips_summary(result),
    }


def write_reconcile_report(data_dir: Path, *, run_id: str, run_date: str, result: ReconcileResult) -> Path:
    report_path = data_dir / "out" / "reports" / "reconcile_report.json"
    write_json(report_path, build_reconcile_report(result, run_id=run_id, run_date=run_date))
    return report_path

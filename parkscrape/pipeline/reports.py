"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from parkscrape.common.fs import write_json
from parkscrape.common.models import RunResult


def _error_payload(error: Exception | None) -> dict | None:
    if error is None:
        return None
    return {
        "error_code": getattr(error, "error_code", "UNEXPECTED_ERROR"),
        "message": str(error),
    }


def build_run_summary(run_id: str, result: RunResult) -> dict:
    counts = result.counts_by_source()
    source_reports = {}
    for code in result.source_codes:
        source_result = result.sources.get(code)
        if source_result is None:
            source_reports[code] = {"status": "not_run", "records": 0}
            continue
        source_reports[code] = {
            "status": "success" if source_result.ok else "error",
            "records": counts.get(code, 0),
            "urls_discovered": source_result.urls_discovered,
            "failed_urls": list(source_result.failed_urls),
            "skipped_urls": len(source_result.skipped_urls),
            "duration_seconds": round(source_result.duration, 3),
            "error": _error_payload(source_result.error),
        }

    status = "success"
    if result.error is not None:
        status = "partial" if result.records else "error"

    total_records = len(result.records)
    sources_scraped = len(result.sources)
    metrics = {
        "mode": "concurrent" if result.concurrent else "sequential",
        "total_duration_seconds": round(result.duration, 3),
        "sources_scraped": sources_scraped,
        "records_collected": total_records,
        "avg_seconds_per_source": round(result.duration / sources_scraped, 3) if sources_scraped else None,
        "avg_seconds_per_record": round(result.duration / total_records, 3) if total_records else None,
    }

    return {
        "run_id": run_id,
        "status": status,
        "sources": result.source_codes,
        "succeeded_sources": result.succeeded_sources(),
        "failed_sources": result.failed_sources(),
        "counts": counts,
        "error": _error_payload(result.error),
        "metrics": metrics,
        "source_reports": source_reports,
    }


def write_run_summary(data_dir: Path, run_id: str, result: RunResult) -> Path:
    summary_path = data_dir / "reports" / "run_summary.json"
    write_json(summary_path, build_run_summary(run_id, result))
    return summary_path


def write_records(path: Path, result: RunResult) -> Path:
    write_json(path, [record.to_dict() for record in result.records], sort_keys=False)
    return path

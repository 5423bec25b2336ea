from __future__ import annotations

import json
from pathlib import Path

from parkscrape.common.errors import CollectionError
from parkscrape.common.models import ParkRecord, RunResult, SourceResult
from parkscrape.pipeline.reports import build_run_summary, write_records, write_run_summary


def _result() -> RunResult:
    oak = ParkRecord(name="Oak", source_code="A", latitude=1.0, longitude=2.0)
    return RunResult(
        concurrent=False,
        source_codes=["A", "B", "C"],
        records=[oak],
        sources={
            "A": SourceResult(
                source_code="A",
                records=[oak],
                urls_discovered=3,
                failed_urls=["https://parks.example.gov/parks/pine"],
                skipped_urls=["https://parks.example.gov/parks/closed"],
                duration=1.5,
            ),
            "B": SourceResult(source_code="B", error=CollectionError("no urls"), duration=0.5),
        },
        error=CollectionError("no urls"),
        duration=2.0,
    )


def test_run_summary_reports_partial_runs():
    summary = build_run_summary("run-1", _result())

    assert summary["status"] == "partial"
    assert summary["succeeded_sources"] == ["A"]
    assert summary["failed_sources"] == ["B"]
    assert summary["counts"] == {"A": 1, "B": 0, "C": 0}
    assert summary["error"] == {"error_code": "COLLECTION_ERROR", "message": "no urls"}
    assert summary["metrics"]["mode"] == "sequential"
    assert summary["metrics"]["sources_scraped"] == 2
    assert summary["metrics"]["avg_seconds_per_source"] == 1.0
    assert summary["metrics"]["avg_seconds_per_record"] == 2.0

    reports = summary["source_reports"]
    assert reports["A"]["failed_urls"] == ["https://parks.example.gov/parks/pine"]
    assert reports["A"]["skipped_urls"] == 1
    assert reports["B"]["status"] == "error"
    assert reports["C"] == {"status": "not_run", "records": 0}


def test_run_summary_without_records_is_an_error():
    result = RunResult(concurrent=True, source_codes=["B"], error=CollectionError("no urls"))

    summary = build_run_summary("run-2", result)

    assert summary["status"] == "error"
    assert summary["metrics"]["avg_seconds_per_record"] is None


def test_write_summary_and_records(tmp_path: Path):
    result = _result()

    summary_path = write_run_summary(tmp_path, run_id="run-1", result=result)
    records_path = write_records(tmp_path / "parks.json", result)

    assert summary_path == tmp_path / "reports" / "run_summary.json"
    assert json.loads(summary_path.read_text(encoding="utf-8"))["run_id"] == "run-1"
    assert json.loads(records_path.read_text(encoding="utf-8")) == [
        {"name": "Oak", "sourceCode": "A", "address": None, "latitude": 1.0, "longitude": 2.0, "activities": []}
    ]

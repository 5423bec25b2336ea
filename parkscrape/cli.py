"""CLI entrypoint for the multi-source park scraper."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from parkscrape.common.config_loader import load_scraper_config
from parkscrape.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from parkscrape.common.errors import ConfigError, PipelineError
from parkscrape.common.geocoding import MapboxGeocoder
from parkscrape.common.ids import generate_run_id
from parkscrape.common.logging import ROOT_LOGGER_NAME, build_logger, log_event
from parkscrape.pipeline.publisher import EventPublisher
from parkscrape.pipeline.reports import write_records, write_run_summary
from parkscrape.pipeline.scheduler import MultiSourceScheduler
from parkscrape.sinks.api_sink import ApiSink
from parkscrape.sinks.file_sink import JsonFileSink


def parse_source_codes(value: str | None) -> list[str]:
    if not value:
        return []
    return [code.strip() for code in value.split(",") if code.strip()]


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--sources", default="", help="Comma-separated source codes (e.g. IL,IN); empty = all")
    parser.add_argument("--concurrent", action="store_true", help="Scrape sources in parallel")
    parser.add_argument("--config", default="./config/sources.yml")
    parser.add_argument("--overlay-config", default=None)
    parser.add_argument("--output-dir", default="./output")
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--api-base", default=None, help="Also POST records to <api-base>/park")
    parser.add_argument("--mapbox-token", default=None)
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--run-id", default=None)
    return parser.parse_args(argv)


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    output_dir = Path(args.output_dir)
    overlay_path = Path(args.overlay_config) if args.overlay_config else None

    settings = load_scraper_config(Path(args.config), overlay_path=overlay_path)
    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level or settings.log_level)
    source_codes = settings.resolve_source_codes(parse_source_codes(args.sources))

    geocoder = MapboxGeocoder(args.mapbox_token or os.environ.get("MAPBOX_ACCESS_TOKEN"))
    api_sink = ApiSink(args.api_base) if args.api_base else None

    try:
        with EventPublisher(maxsize=settings.queue_size) as publisher:
            publisher.subscribe(JsonFileSink(output_dir))
            if api_sink is not None:
                publisher.subscribe(api_sink)

            scheduler = MultiSourceScheduler(settings, publisher, geocoder=geocoder)
            result = scheduler.run(source_codes, concurrent=args.concurrent)
            publisher.wait_for_idle()
    finally:
        geocoder.close()
        if api_sink is not None:
            api_sink.close()

    write_records(output_dir / "parks.json", result)
    write_run_summary(data_dir, run_id=run_id, result=result)

    counts = result.counts_by_source()
    for code in result.source_codes:
        source_result = result.sources.get(code)
        status = "not_run" if source_result is None else ("ok" if source_result.ok else "error")
        log_event(
            logger,
            f"{code}: {counts.get(code, 0)} parks",
            run_id=run_id,
            stage="summary",
            source=code,
            event="SOURCE_SUMMARY",
            status=status,
            records=counts.get(code, 0),
        )

    if result.error is not None:
        return EXIT_PARTIAL if result.records else EXIT_HARD_FAIL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        return run_command(args)
    except ConfigError as exc:
        logging.getLogger(ROOT_LOGGER_NAME).error("configuration error: %s", exc)
        return EXIT_HARD_FAIL
    except PipelineError as exc:
        logging.getLogger(ROOT_LOGGER_NAME).error("run failed: %s", exc, extra={"error_code": exc.error_code})
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())

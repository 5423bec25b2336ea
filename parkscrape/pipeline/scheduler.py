"""Multi-source scrape orchestration, sequential or one thread per source."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import partial
from typing import Callable, Iterable

from parkscrape.collect.base import UrlCollector
from parkscrape.collect.factory import build_collector
from parkscrape.common.config_loader import ScraperSettings, SourceConfig
from parkscrape.common.errors import FetchError
from parkscrape.common.http import HttpClient
from parkscrape.common.logging import log_event
from parkscrape.common.models import FetchOutcome, RunResult, ScrapedEvent, SourceResult
from parkscrape.extract.address import Geocoder
from parkscrape.extract.factory import RecordExtractor, build_extractor
from parkscrape.pipeline.fetch_unit import RetryingFetcher
from parkscrape.pipeline.publisher import EventPublisher

logger = logging.getLogger(__name__)


def build_http_client(source: SourceConfig, settings: ScraperSettings) -> HttpClient:
    return HttpClient(request_delay=settings.request_delay_for(source.source_code))


class MultiSourceScheduler:
    def __init__(
        self,
        settings: ScraperSettings,
        publisher: EventPublisher | None = None,
        *,
        geocoder: Geocoder | None = None,
        client_factory: Callable[[SourceConfig, ScraperSettings], HttpClient] | None = None,
        collector_factory: Callable[[SourceConfig, HttpClient], UrlCollector] | None = None,
        extractor_factory: Callable[[SourceConfig, Geocoder | None], RecordExtractor] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.publisher = publisher
        self.geocoder = geocoder
        self._client_factory = client_factory or build_http_client
        self._collector_factory = collector_factory or build_collector
        self._extractor_factory = extractor_factory or build_extractor
        self._sleep = sleep

    def run(self, source_codes: Iterable[str] | None = None, concurrent: bool = False) -> RunResult:
        """Scrape the requested sources (all when empty).

        Unknown codes raise ``ConfigError`` before any source is touched. A
        failed source never discards records from the others; the run's
        ``error`` is the first source failure observed.
        """
        codes = self.settings.resolve_source_codes(source_codes)
        result = RunResult(concurrent=concurrent, source_codes=codes)
        started = time.monotonic()

        log_event(
            logger,
            f"starting {'concurrent' if concurrent else 'sequential'} scrape of {', '.join(codes)}",
            stage="run",
            event="RUN_START",
            status="ok",
        )
        if concurrent:
            self._run_concurrent(codes, result)
        else:
            self._run_sequential(codes, result)
        result.duration = time.monotonic() - started

        log_event(
            logger,
            f"scraped {len(result.records)} records from {len(result.succeeded_sources())}/{len(codes)} sources",
            level=logging.INFO if result.ok else logging.ERROR,
            stage="run",
            event="RUN_END",
            status="ok" if result.ok else "partial",
            duration_ms=round(result.duration * 1000, 1),
            records=len(result.records),
        )
        return result

    def _merge(self, result: RunResult, source_result: SourceResult) -> None:
        result.sources[source_result.source_code] = source_result
        result.records.extend(source_result.records)
        if source_result.error is not None and result.error is None:
            result.error = source_result.error

    def _run_sequential(self, codes: list[str], result: RunResult) -> None:
        for code in codes:
            source_result = self.scrape_source(code)
            self._merge(result, source_result)
            if not source_result.ok:
                break

    def _run_concurrent(self, codes: list[str], result: RunResult) -> None:
        # Each worker returns its own SourceResult; merging happens here, after completion.
        with ThreadPoolExecutor(max_workers=len(codes), thread_name_prefix="parkscrape-source") as pool:
            futures = [pool.submit(self.scrape_source, code) for code in codes]
            for future in as_completed(futures):
                self._merge(result, future.result())

    def _publish(self, source_code: str, outcome: FetchOutcome) -> None:
        if self.publisher is None or outcome.record is None:
            return
        self.publisher.publish(
            ScrapedEvent(
                record=outcome.record,
                source_code=source_code,
                url=outcome.url,
                duration=outcome.duration,
                timestamp=outcome.completed_at,
            )
        )

    def scrape_source(self, source_code: str) -> SourceResult:
        source = self.settings.sources[source_code]
        source_result = SourceResult(source_code=source_code)
        started = time.monotonic()
        log_event(logger, "source start", stage="source", source=source_code, url=source.base_url, event="SOURCE_START")

        client: HttpClient | None = None
        try:
            client = self._client_factory(source, self.settings)
            collector = self._collector_factory(source, client)
            extractor = self._extractor_factory(source, self.geocoder)
            urls = collector.collect(source.base_url)
            source_result.urls_discovered = len(urls)

            fetcher = RetryingFetcher(
                client.fetch_page,
                extractor,
                max_retries=self.settings.max_retries,
                on_scraped=partial(self._publish, source_code),
                sleep=self._sleep,
                source_code=source_code,
            )
            for index, url in enumerate(urls, start=1):
                logger.debug("[%s %d/%d] scraping %s", source_code, index, len(urls), url)
                try:
                    outcome = fetcher.scrape(url)
                except FetchError as exc:
                    source_result.failed_urls.append(url)
                    log_event(
                        logger,
                        str(exc),
                        level=logging.ERROR,
                        stage="fetch",
                        source=source_code,
                        url=url,
                        event="FETCH_FAIL",
                        status="error",
                        error_code=exc.error_code,
                    )
                    continue
                if outcome.record is None:
                    source_result.skipped_urls.append(url)
                    continue
                source_result.records.append(outcome.record)
        except Exception as exc:
            source_result.error = exc
            log_event(
                logger,
                f"failed to scrape {source_code}: {exc}",
                level=logging.ERROR,
                stage="source",
                source=source_code,
                event="SOURCE_FAIL",
                status="error",
                error_code=getattr(exc, "error_code", "UNEXPECTED_ERROR"),
            )
        finally:
            if client is not None:
                client.close()
            source_result.duration = time.monotonic() - started

        if source_result.ok:
            log_event(
                logger,
                f"completed {source_code}: {len(source_result.records)}/{source_result.urls_discovered} records",
                stage="source",
                source=source_code,
                event="SOURCE_END",
                status="ok",
                duration_ms=round(source_result.duration * 1000, 1),
                records=len(source_result.records),
            )
        return source_result

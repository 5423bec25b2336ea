"""Retrying fetch-and-extract unit with adaptive backoff."""

from __future__ import annotations

import logging
import time
from typing import Callable

from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_none

from parkscrape.common.errors import FetchError
from parkscrape.common.http import HttpRequestError, Page
from parkscrape.common.logging import log_event
from parkscrape.common.models import FetchOutcome
from parkscrape.common.time_utils import utc_now
from parkscrape.extract.factory import RecordExtractor

logger = logging.getLogger(__name__)


class RetryingFetcher:
    """Fetches one detail page at a time and runs the source's extractor on it.

    ``wait_ms`` is adaptive instance state: it doubles on every failed fetch and
    is halved (never below 1, never above its value at the start of the call)
    after a successful one. Each fetcher owns its own value, so fetchers running
    for different sources never share backoff.

    The only sleep is the one before the first attempt; retries within a call
    run back to back and just grow ``wait_ms`` for the next page.
    """

    def __init__(
        self,
        fetch_page: Callable[[str], Page],
        extractor: RecordExtractor,
        *,
        max_retries: int = 3,
        on_scraped: Callable[[FetchOutcome], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        source_code: str | None = None,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.fetch_page = fetch_page
        self.extractor = extractor
        self.max_retries = max_retries
        self.on_scraped = on_scraped
        self.source_code = source_code
        self.wait_ms = 1
        self._sleep = sleep

    def _after_failure(self, retry_state: RetryCallState) -> None:
        self.wait_ms *= 2
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        log_event(
            logger,
            f"fetch attempt {retry_state.attempt_number}/{self.max_retries} failed: {exc}; "
            f"backoff now {self.wait_ms}ms",
            level=logging.WARNING,
            stage="fetch",
            source=self.source_code,
            url=retry_state.args[0] if retry_state.args else None,
            event="FETCH_RETRY",
            status="error",
            attempt=retry_state.attempt_number,
        )

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_none(),
            retry=retry_if_exception_type(HttpRequestError),
            after=self._after_failure,
            reraise=True,
        )

    def scrape(self, url: str) -> FetchOutcome:
        started = time.monotonic()
        wait_at_start = self.wait_ms
        self._sleep(self.wait_ms / 1000.0)

        try:
            page = self._retrying()(self.fetch_page, url)
        except HttpRequestError as exc:
            raise FetchError(f"Failed to scrape {url} after {self.max_retries} attempts: {exc}") from exc

        self.wait_ms = max(1, min(self.wait_ms // 2, wait_at_start))
        record = self.extractor.extract(page)
        outcome = FetchOutcome(
            url=url,
            record=record,
            duration=time.monotonic() - started,
            completed_at=utc_now(),
        )

        if record is not None and self.on_scraped is not None:
            self.on_scraped(outcome)
        return outcome

"""Subscriber that forwards each scraped record to the parks HTTP API."""

from __future__ import annotations

import logging

from parkscrape.common.errors import PipelineError
from parkscrape.common.http import HttpClient, TimeoutConfig
from parkscrape.common.logging import log_event
from parkscrape.common.models import ScrapedEvent

logger = logging.getLogger(__name__)

SUCCESS_STATUS_CODES = {200, 201}


class ApiSink:
    def __init__(self, api_base: str, http_client: HttpClient | None = None) -> None:
        self.endpoint = f"{api_base.rstrip('/')}/park"
        self.http_client = http_client or HttpClient(timeout=TimeoutConfig(connect=10, read=10))

    def close(self) -> None:
        self.http_client.close()

    def on_record_scraped(self, event: ScrapedEvent) -> bool:
        fields = {"stage": "sink", "source": event.source_code, "url": event.url}
        try:
            response = self.http_client.post_json(self.endpoint, event.record.to_dict())
        except PipelineError as exc:
            log_event(
                logger,
                f"failed to post park {event.record.name!r}: {exc}",
                level=logging.ERROR,
                event="API_POST_FAIL",
                status="error",
                error_code=exc.error_code,
                **fields,
            )
            return False

        if response.status_code in SUCCESS_STATUS_CODES:
            log_event(
                logger,
                f"posted park {event.record.name!r}; API returned {response.status_code}",
                event="API_POST",
                status="ok",
                **fields,
            )
            return True

        log_event(
            logger,
            f"posting park {event.record.name!r} failed with status {response.status_code}",
            level=logging.WARNING,
            event="API_POST_FAIL",
            status="error",
            error_code="HTTP_ERROR",
            **fields,
        )
        return False

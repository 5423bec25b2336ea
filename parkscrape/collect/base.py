"""URL collector contract and shared discovery checks."""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from parkscrape.common.errors import CollectionError
from parkscrape.common.logging import log_event

logger = logging.getLogger(__name__)


class UrlCollector(Protocol):
    def collect(self, homepage_url: str) -> list[str]:
        ...


def require_urls(urls: Iterable[str], homepage_url: str) -> list[str]:
    """De-duplicate discovered URLs in first-seen order; finding none is an error."""
    unique = list(dict.fromkeys(urls))
    if not unique:
        raise CollectionError(f"No detail page URLs discovered from {homepage_url}")
    log_event(
        logger,
        f"collected {len(unique)} detail page urls",
        stage="collect",
        url=homepage_url,
        event="URLS_COLLECTED",
        status="ok",
        records=len(unique),
    )
    return unique

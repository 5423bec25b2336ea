"""Detail-page discovery through a JSON API advertised on the homepage."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import urljoin

from parkscrape.collect.base import require_urls
from parkscrape.common.config_loader import HomepageConfig
from parkscrape.common.constants import JSON_PREVIEW_CHARS
from parkscrape.common.errors import CollectionError
from parkscrape.common.http import HttpClient, HttpRequestError, Page
from parkscrape.common.logging import log_event

logger = logging.getLogger(__name__)

_MISSING = object()


def lookup_path(data: Any, path: str, default: Any = None) -> Any:
    """Walk a dotted path ("meta.dynamicPageLink") through nested mappings."""
    current = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def _preview(payload: Any) -> str:
    try:
        text = json.dumps(payload, ensure_ascii=False)
    except (TypeError, ValueError):
        text = repr(payload)
    return text[:JSON_PREVIEW_CHARS]


class JsonApiCollector:
    def __init__(self, homepage: HomepageConfig, http_client: HttpClient) -> None:
        if homepage.json_api is None or not homepage.api_url_selector:
            raise ValueError("json_api collector needs api_url_selector and json_api selectors")
        self.homepage = homepage
        self.selectors = homepage.json_api
        self.http_client = http_client

    def _api_urls(self, page: Page) -> list[str]:
        urls = []
        for element in page.soup.select(self.homepage.api_url_selector):
            value = element.get(self.homepage.api_url_attribute)
            if value:
                urls.append(urljoin(page.url, value.strip()))
        return urls

    def urls_from_payload(self, payload: Any, api_url: str) -> list[str]:
        items = lookup_path(payload, self.selectors.list_path, _MISSING)
        if items is _MISSING or not isinstance(items, list):
            log_event(
                logger,
                f"list path {self.selectors.list_path!r} not found in JSON payload; preview: {_preview(payload)}",
                level=logging.WARNING,
                stage="collect",
                url=api_url,
                event="JSON_LIST_PATH_MISSING",
                status="warning",
            )
            return []

        urls: list[str] = []
        for item in items:
            href = lookup_path(item, self.selectors.url_path)
            if not isinstance(href, str) or not href.strip():
                continue
            absolute = urljoin(api_url, href.strip())
            if self.selectors.name_path:
                logger.debug("found park %s -> %s", lookup_path(item, self.selectors.name_path), absolute)
            urls.append(absolute)
        return urls

    def collect(self, homepage_url: str) -> list[str]:
        try:
            homepage = self.http_client.get_page(homepage_url)
        except HttpRequestError as exc:
            raise CollectionError(f"Failed to visit homepage {homepage_url}: {exc}") from exc

        urls: list[str] = []
        for api_url in self._api_urls(homepage):
            log_event(logger, "found JSON API endpoint", stage="collect", url=api_url, event="JSON_API_FOUND")
            try:
                document = self.http_client.get_json(api_url)
            except HttpRequestError as exc:
                raise CollectionError(f"Failed to fetch JSON API {api_url}: {exc}") from exc
            # Item links resolve against the final (post-redirect) JSON URL.
            urls.extend(self.urls_from_payload(document.payload, document.url))

        return require_urls(urls, homepage_url)

"""Detail-page discovery from anchor links in a static homepage section."""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from urllib.parse import urljoin, urlparse

from bs4 import Tag

from parkscrape.collect.base import require_urls
from parkscrape.common.config_loader import HomepageConfig
from parkscrape.common.errors import CollectionError
from parkscrape.common.http import HttpClient, HttpRequestError
from parkscrape.common.logging import log_event

logger = logging.getLogger(__name__)


class InvalidPatternError(ValueError):
    pass


@lru_cache(maxsize=64)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a path glob into a regex; `*` and `?` never cross a `/`."""
    out: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        char = pattern[i]
        i += 1
        if char == "*":
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "\\":
            if i >= n:
                raise InvalidPatternError(f"Trailing escape in pattern: {pattern}")
            out.append(re.escape(pattern[i]))
            i += 1
        elif char == "[":
            end = pattern.find("]", i)
            if end == -1:
                raise InvalidPatternError(f"Unterminated character class in pattern: {pattern}")
            body = pattern[i:end]
            negate = body[:1] in ("!", "^")
            if negate:
                body = body[1:]
            if not body:
                raise InvalidPatternError(f"Empty character class in pattern: {pattern}")
            out.append("[" + ("^" if negate else "") + body.replace("\\", "\\\\") + "]")
            i = end + 1
        else:
            out.append(re.escape(char))
    try:
        return re.compile("".join(out))
    except re.error as exc:
        raise InvalidPatternError(str(exc)) from exc


def matches_href_pattern(pattern: str, href: str) -> bool:
    if not pattern:
        return True
    try:
        return compile_glob(pattern).fullmatch(href) is not None
    except InvalidPatternError:
        if pattern.endswith("*"):
            return href.startswith(pattern[:-1])
        return pattern in href


def link_name(anchor: Tag, name_attribute: str) -> str:
    if name_attribute in ("title", "aria-label"):
        return (anchor.get(name_attribute) or "").strip()
    return anchor.get_text(" ", strip=True)


class StaticHtmlCollector:
    def __init__(self, homepage: HomepageConfig, http_client: HttpClient) -> None:
        self.homepage = homepage
        self.http_client = http_client

    def _matches(self, href: str, absolute: str, page_url: str) -> bool:
        pattern = self.homepage.url_element.href_pattern
        if matches_href_pattern(pattern, href):
            return True
        # Path matching only applies to links on the homepage's own host.
        resolved = urlparse(absolute)
        if resolved.netloc != urlparse(page_url).netloc:
            return False
        return matches_href_pattern(pattern, resolved.path)

    def collect(self, homepage_url: str) -> list[str]:
        section_selector = self.homepage.section.css_selector()
        try:
            page = self.http_client.get_page(homepage_url)
        except HttpRequestError as exc:
            raise CollectionError(f"Failed to visit homepage {homepage_url}: {exc}") from exc

        sections = page.soup.select(section_selector)
        if not sections:
            log_event(
                logger,
                f"section {section_selector!r} not found on homepage",
                level=logging.WARNING,
                stage="collect",
                url=homepage_url,
                event="SECTION_MISSING",
                status="warning",
            )

        urls: list[str] = []
        for section in sections:
            for anchor in section.select("a[href]"):
                href = (anchor.get("href") or "").strip()
                if not href:
                    continue
                absolute = urljoin(page.url, href)
                if not self._matches(href, absolute, page.url):
                    continue
                logger.debug(
                    "found park %s -> %s", link_name(anchor, self.homepage.url_element.name_attribute), absolute
                )
                urls.append(absolute)

        return require_urls(urls, homepage_url)

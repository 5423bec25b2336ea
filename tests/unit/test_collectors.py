from __future__ import annotations

import logging

import pytest

from parkscrape.collect.factory import build_collector
from parkscrape.collect.json_api import JsonApiCollector, lookup_path
from parkscrape.collect.static_html import (
    InvalidPatternError,
    StaticHtmlCollector,
    compile_glob,
    link_name,
    matches_href_pattern,
)
from parkscrape.common.config_loader import (
    HomepageConfig,
    HtmlSection,
    JsonApiSelectors,
    UrlElement,
    build_settings,
)
from parkscrape.common.errors import CollectionError, ConfigError
from parkscrape.common.http import HttpRequestError, JsonDocument, Page

HOMEPAGE = "https://parks.example.gov/"


class FakeHttpClient:
    def __init__(
        self,
        pages: dict[str, str] | None = None,
        payloads: dict[str, object] | None = None,
        redirects: dict[str, str] | None = None,
    ):
        self.pages = pages or {}
        self.payloads = payloads or {}
        self.redirects = redirects or {}
        self.calls: list[str] = []

    def get_page(self, url: str) -> Page:
        self.calls.append(url)
        if url not in self.pages:
            raise HttpRequestError(f"HTTP 404 for {url}")
        return Page.from_html(url, self.pages[url])

    def get_json(self, url: str) -> JsonDocument:
        self.calls.append(url)
        final_url = self.redirects.get(url, url)
        if final_url not in self.payloads:
            raise HttpRequestError(f"HTTP 404 for {url}")
        return JsonDocument(url=final_url, payload=self.payloads[final_url])


def _static_homepage(pattern: str = "/parks/*", **section) -> HomepageConfig:
    return HomepageConfig(
        strategy="static_html",
        section=HtmlSection(**section),
        url_element=UrlElement(href_pattern=pattern),
    )


def _json_homepage(list_path: str = "listItems") -> HomepageConfig:
    return HomepageConfig(
        strategy="json_api",
        api_url_selector="[data-api-url]",
        json_api=JsonApiSelectors(list_path=list_path, url_path="meta.dynamicPageLink", name_path="parkName"),
    )


def test_static_collector_filters_links_by_pattern():
    html = """
    <html><body>
      <a href="/parks/oak">Oak</a>
      <a href="/about">About</a>
      <a href="/parks/pine">Pine</a>
    </body></html>
    """
    collector = StaticHtmlCollector(_static_homepage(), FakeHttpClient({HOMEPAGE: html}))

    assert collector.collect(HOMEPAGE) == [
        "https://parks.example.gov/parks/oak",
        "https://parks.example.gov/parks/pine",
    ]


def test_static_collector_matches_absolute_links_by_path_and_dedupes():
    html = """
    <main>
      <a href="https://parks.example.gov/parks/oak">Oak</a>
      <a href="/parks/oak">Oak again</a>
      <a href="parks/elm">Relative</a>
    </main>
    """
    collector = StaticHtmlCollector(_static_homepage(selector="main"), FakeHttpClient({HOMEPAGE: html}))

    assert collector.collect(HOMEPAGE) == [
        "https://parks.example.gov/parks/oak",
        "https://parks.example.gov/parks/elm",
    ]


def test_static_collector_ignores_off_site_links_with_matching_paths():
    html = """
    <main>
      <a href="/parks/oak">Oak</a>
      <a href="https://ads.other.com/parks/promo">Promo</a>
      <a href="//cdn.other.com/parks/banner">Banner</a>
    </main>
    """
    collector = StaticHtmlCollector(_static_homepage(selector="main"), FakeHttpClient({HOMEPAGE: html}))

    assert collector.collect(HOMEPAGE) == ["https://parks.example.gov/parks/oak"]


def test_static_collector_only_reads_the_configured_section():
    html = """
    <nav id="menu"><a href="/parks/menu-link">Menu</a></nav>
    <div id="parks" class="listing"><a href="/parks/oak">Oak</a></div>
    <div class="listing"><a href="/parks/pine">Pine</a></div>
    """
    by_id = StaticHtmlCollector(_static_homepage(id="parks", class_name="listing"), FakeHttpClient({HOMEPAGE: html}))
    by_class = StaticHtmlCollector(_static_homepage(class_name="listing"), FakeHttpClient({HOMEPAGE: html}))

    assert by_id.collect(HOMEPAGE) == ["https://parks.example.gov/parks/oak"]
    assert by_class.collect(HOMEPAGE) == [
        "https://parks.example.gov/parks/oak",
        "https://parks.example.gov/parks/pine",
    ]


def test_static_collector_raises_when_nothing_matches(caplog):
    caplog.set_level(logging.WARNING, logger="parkscrape")
    html = "<div id='other'><a href='/parks/oak'>Oak</a></div>"
    collector = StaticHtmlCollector(_static_homepage(id="parks"), FakeHttpClient({HOMEPAGE: html}))

    with pytest.raises(CollectionError, match="No detail page URLs"):
        collector.collect(HOMEPAGE)

    assert any(getattr(record, "event", None) == "SECTION_MISSING" for record in caplog.records)


def test_static_collector_wraps_homepage_failures():
    collector = StaticHtmlCollector(_static_homepage(), FakeHttpClient())

    with pytest.raises(CollectionError, match="Failed to visit homepage"):
        collector.collect(HOMEPAGE)


def test_glob_does_not_cross_path_separators():
    assert matches_href_pattern("/parks/*", "/parks/oak")
    assert not matches_href_pattern("/parks/*", "/parks/oak/map")
    assert matches_href_pattern("/parks/?ak", "/parks/oak")
    assert matches_href_pattern("/parks/[a-c]*", "/parks/birch")
    assert not matches_href_pattern("/parks/[!a-c]*", "/parks/birch")
    assert matches_href_pattern("", "/anything/at/all")


def test_invalid_glob_falls_back_to_prefix_or_substring():
    with pytest.raises(InvalidPatternError):
        compile_glob("/parks/[*")

    assert matches_href_pattern("/parks/[*", "/parks/[oak]")
    assert not matches_href_pattern("/parks/[*", "/lakes/[oak]")
    assert matches_href_pattern("parks/[", "/state/parks/[oak]")


def test_link_name_attributes():
    page = Page.from_html(HOMEPAGE, '<a href="/x" title="Oak title" aria-label="Oak label"> Oak <b>Park</b> </a>')
    anchor = page.soup.select_one("a")

    assert link_name(anchor, "text") == "Oak Park"
    assert link_name(anchor, "title") == "Oak title"
    assert link_name(anchor, "aria-label") == "Oak label"


def test_lookup_path_walks_nested_mappings():
    data = {"meta": {"dynamicPageLink": "/parks/oak.html"}}

    assert lookup_path(data, "meta.dynamicPageLink") == "/parks/oak.html"
    assert lookup_path(data, "meta.missing") is None
    assert lookup_path(data, "meta.dynamicPageLink.deeper", "fallback") == "fallback"


def test_json_api_collector_discovers_urls():
    homepage_html = '<div class="cmp-list" data-api-url="/api/parks.model.json"></div>'
    payload = {
        "listItems": [
            {"parkName": "Oak", "meta": {"dynamicPageLink": "/parks/oak.html"}},
            {"parkName": "No link", "meta": {}},
            {"parkName": "Blank", "meta": {"dynamicPageLink": "  "}},
            {"parkName": "Elsewhere", "meta": {"dynamicPageLink": "https://other.example.gov/x.html"}},
            {"parkName": "Oak", "meta": {"dynamicPageLink": "/parks/oak.html"}},
        ]
    }
    client = FakeHttpClient(
        pages={HOMEPAGE: homepage_html},
        payloads={"https://parks.example.gov/api/parks.model.json": payload},
    )

    urls = JsonApiCollector(_json_homepage(), client).collect(HOMEPAGE)

    assert urls == [
        "https://parks.example.gov/parks/oak.html",
        "https://other.example.gov/x.html",
    ]
    assert client.calls == [HOMEPAGE, "https://parks.example.gov/api/parks.model.json"]


def test_json_api_resolves_items_against_the_redirected_url():
    homepage_html = '<div data-api-url="/api/parks.json"></div>'
    payload = {"listItems": [{"meta": {"dynamicPageLink": "oak.html"}}]}
    client = FakeHttpClient(
        pages={HOMEPAGE: homepage_html},
        payloads={"https://content.example.gov/v2/parks/list.json": payload},
        redirects={"https://parks.example.gov/api/parks.json": "https://content.example.gov/v2/parks/list.json"},
    )

    urls = JsonApiCollector(_json_homepage(), client).collect(HOMEPAGE)

    assert urls == ["https://content.example.gov/v2/parks/oak.html"]


def test_json_api_missing_list_path_logs_preview_and_raises(caplog):
    caplog.set_level(logging.WARNING, logger="parkscrape")
    homepage_html = '<div data-api-url="/api/parks.json"></div>'
    payload = {"results": [{"name": "x" * 1000}]}
    client = FakeHttpClient(
        pages={HOMEPAGE: homepage_html},
        payloads={"https://parks.example.gov/api/parks.json": payload},
    )

    with pytest.raises(CollectionError):
        JsonApiCollector(_json_homepage(), client).collect(HOMEPAGE)

    warnings = [record for record in caplog.records if getattr(record, "event", None) == "JSON_LIST_PATH_MISSING"]
    assert len(warnings) == 1
    assert '{"results"' in warnings[0].getMessage()


def test_json_api_without_endpoint_raises():
    client = FakeHttpClient(pages={HOMEPAGE: "<p>No API here</p>"})

    with pytest.raises(CollectionError):
        JsonApiCollector(_json_homepage(), client).collect(HOMEPAGE)


def test_json_api_transport_error_is_a_collection_error():
    client = FakeHttpClient(pages={HOMEPAGE: '<div data-api-url="/api/parks.json"></div>'})

    with pytest.raises(CollectionError, match="Failed to fetch JSON API"):
        JsonApiCollector(_json_homepage(), client).collect(HOMEPAGE)


def test_build_collector_by_strategy():
    settings = build_settings(
        {
            "sources": {
                "A": {
                    "base_url": HOMEPAGE,
                    "homepage": {"strategy": "static_html", "selectors": {"url_element": {"href_pattern": "/p/*"}}},
                    "detail_page": {
                        "strategy": "selectors",
                        "selectors": {"name": "h1", "latitude": ".lat", "longitude": ".lon"},
                    },
                }
            }
        }
    )
    source = settings.sources["A"]

    assert isinstance(build_collector(source, FakeHttpClient()), StaticHtmlCollector)

    broken = source.__class__(
        source_code="A",
        base_url=HOMEPAGE,
        homepage=HomepageConfig(strategy="rss"),
        detail_page=source.detail_page,
    )
    with pytest.raises(ConfigError):
        build_collector(broken, FakeHttpClient())

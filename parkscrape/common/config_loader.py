"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from parkscrape.common.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_REQUEST_DELAY_SECONDS,
)
from parkscrape.common.errors import ConfigError
from parkscrape.common.fs import read_yaml
from parkscrape.common.models import Coordinates
from parkscrape.common.schema import validate_scraper_config


@dataclass(frozen=True)
class JsonApiSelectors:
    list_path: str
    url_path: str
    name_path: str | None = None


@dataclass(frozen=True)
class HtmlSection:
    id: str | None = None
    class_name: str | None = None
    selector: str | None = None

    def css_selector(self) -> str:
        # Most specific wins: explicit selector, then id, then class.
        if self.selector:
            return self.selector
        if self.id:
            return f"#{self.id}"
        if self.class_name:
            return f".{self.class_name}"
        return "body"


@dataclass(frozen=True)
class UrlElement:
    href_pattern: str = ""
    name_attribute: str = "text"


@dataclass(frozen=True)
class HomepageConfig:
    strategy: str
    api_url_selector: str | None = None
    api_url_attribute: str = "data-api-url"
    json_api: JsonApiSelectors | None = None
    section: HtmlSection = field(default_factory=HtmlSection)
    url_element: UrlElement = field(default_factory=UrlElement)


@dataclass(frozen=True)
class DetailSelectors:
    name: str
    latitude: str | None = None
    longitude: str | None = None
    activities: str | None = None
    activity_description_attribute: str | None = None
    address: str | None = None
    address_label: str = "Address:"
    fallback_region: str | None = None


@dataclass(frozen=True)
class DetailPageConfig:
    strategy: str
    selectors: DetailSelectors
    default_coordinates: Coordinates | None = None


@dataclass(frozen=True)
class SourceConfig:
    source_code: str
    base_url: str
    homepage: HomepageConfig
    detail_page: DetailPageConfig
    request_delay: float | None = None


@dataclass(frozen=True)
class ScraperSettings:
    sources: dict[str, SourceConfig]
    log_level: str = "INFO"
    request_delay: float = DEFAULT_REQUEST_DELAY_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    queue_size: int = DEFAULT_QUEUE_SIZE

    def resolve_source_codes(self, source_codes: Iterable[str] | None) -> list[str]:
        """Empty selection means every configured source; unknown codes are fatal."""
        codes = list(source_codes or [])
        if not codes:
            return list(self.sources)
        for code in codes:
            if code not in self.sources:
                raise ConfigError(f"No configuration found for source: {code}")
        return codes

    def request_delay_for(self, source_code: str) -> float:
        source = self.sources[source_code]
        if source.request_delay is not None:
            return source.request_delay
        return self.request_delay


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    return _deep_merge(base, overlay)


def _optional_float(value: Any, ctx: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{ctx} must be a number, got {value!r}") from exc


def _coordinates(raw: dict | None, ctx: str) -> Coordinates | None:
    if raw is None:
        return None
    return Coordinates(
        latitude=_optional_float(raw["latitude"], f"{ctx}.latitude"),
        longitude=_optional_float(raw["longitude"], f"{ctx}.longitude"),
    )


def _homepage_config(raw: dict) -> HomepageConfig:
    selectors = raw["selectors"]
    if raw["strategy"] == "json_api":
        json_api = selectors["json_api"]
        return HomepageConfig(
            strategy="json_api",
            api_url_selector=selectors["api_url_selector"],
            api_url_attribute=selectors.get("api_url_attribute") or "data-api-url",
            json_api=JsonApiSelectors(
                list_path=json_api["list_path"],
                url_path=json_api["url_path"],
                name_path=json_api.get("name_path"),
            ),
        )

    section = selectors.get("section") or {}
    url_element = selectors["url_element"]
    return HomepageConfig(
        strategy="static_html",
        section=HtmlSection(
            id=section.get("id"),
            class_name=section.get("class"),
            selector=section.get("selector"),
        ),
        url_element=UrlElement(
            href_pattern=url_element.get("href_pattern") or "",
            name_attribute=url_element.get("name_attribute") or "text",
        ),
    )


def _detail_page_config(raw: dict, ctx: str) -> DetailPageConfig:
    selectors = raw["selectors"]
    return DetailPageConfig(
        strategy=raw["strategy"],
        selectors=DetailSelectors(
            name=selectors["name"],
            latitude=selectors.get("latitude"),
            longitude=selectors.get("longitude"),
            activities=selectors.get("activities"),
            activity_description_attribute=selectors.get("activity_description_attribute"),
            address=selectors.get("address"),
            address_label=selectors.get("address_label") or "Address:",
            fallback_region=selectors.get("fallback_region"),
        ),
        default_coordinates=_coordinates(raw.get("default_coordinates"), f"{ctx}.default_coordinates"),
    )


def build_settings(cfg: dict, *, allow_unknown: bool = False) -> ScraperSettings:
    cfg = validate_scraper_config(cfg, allow_unknown=allow_unknown)

    sources: dict[str, SourceConfig] = {}
    for code, raw in cfg["sources"].items():
        code = str(code)
        ctx = f"sources.{code}"
        sources[code] = SourceConfig(
            source_code=code,
            base_url=raw["base_url"],
            homepage=_homepage_config(raw["homepage"]),
            detail_page=_detail_page_config(raw["detail_page"], f"{ctx}.detail_page"),
            request_delay=_optional_float(raw.get("request_delay_seconds"), f"{ctx}.request_delay_seconds"),
        )

    max_retries = int(cfg.get("max_retries", DEFAULT_MAX_RETRIES))
    if max_retries < 1:
        raise ConfigError("max_retries must be at least 1")
    queue_size = int(cfg.get("queue_size", DEFAULT_QUEUE_SIZE))
    if queue_size < 1:
        raise ConfigError("queue_size must be at least 1")

    request_delay = _optional_float(cfg.get("request_delay_seconds"), "request_delay_seconds")
    return ScraperSettings(
        sources=sources,
        log_level=str(cfg.get("log_level") or "INFO").upper(),
        request_delay=DEFAULT_REQUEST_DELAY_SECONDS if request_delay is None else request_delay,
        max_retries=max_retries,
        queue_size=queue_size,
    )


def load_scraper_config(
    config_path: Path,
    *,
    allow_unknown: bool = False,
    overlay_path: Path | None = None,
) -> ScraperSettings:
    return build_settings(_load_yaml_with_overlay(config_path, overlay_path), allow_unknown=allow_unknown)

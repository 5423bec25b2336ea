"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from parkscrape.common.constants import DETAIL_STRATEGIES, HOMEPAGE_STRATEGIES, NAME_ATTRIBUTES
from parkscrape.common.errors import ConfigError

TOP_REQUIRED = {"sources"}
TOP_KNOWN = TOP_REQUIRED | {"log_level", "request_delay_seconds", "max_retries", "queue_size"}
SOURCE_REQUIRED = {"base_url", "homepage", "detail_page"}
SOURCE_KNOWN = SOURCE_REQUIRED | {"request_delay_seconds"}
JSON_API_SELECTOR_KEYS = {"api_url_selector", "api_url_attribute", "json_api"}
STATIC_HTML_SELECTOR_KEYS = {"section", "url_element"}
DETAIL_SELECTOR_KEYS = {
    "name",
    "latitude",
    "longitude",
    "activities",
    "activity_description_attribute",
    "address",
    "address_label",
    "fallback_region",
}


def _assert_mapping(obj: object, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _validate_homepage(homepage: dict, ctx: str, allow_unknown: bool) -> None:
    _assert_required_keys(homepage, {"strategy", "selectors"}, ctx)
    _assert_no_unknown_keys(homepage, {"strategy", "selectors"}, ctx, allow_unknown)
    strategy = homepage["strategy"]
    if strategy not in HOMEPAGE_STRATEGIES:
        raise ConfigError(f"Unknown homepage strategy in {ctx}: {strategy}")
    selectors = _assert_mapping(homepage["selectors"], f"{ctx}.selectors")

    if strategy == "json_api":
        _assert_required_keys(selectors, {"api_url_selector", "json_api"}, f"{ctx}.selectors")
        _assert_no_unknown_keys(selectors, JSON_API_SELECTOR_KEYS, f"{ctx}.selectors", allow_unknown)
        json_api = _assert_mapping(selectors["json_api"], f"{ctx}.selectors.json_api")
        _assert_required_keys(json_api, {"list_path", "url_path"}, f"{ctx}.selectors.json_api")
        _assert_no_unknown_keys(
            json_api, {"list_path", "url_path", "name_path"}, f"{ctx}.selectors.json_api", allow_unknown
        )
    else:
        _assert_required_keys(selectors, {"url_element"}, f"{ctx}.selectors")
        _assert_no_unknown_keys(selectors, STATIC_HTML_SELECTOR_KEYS, f"{ctx}.selectors", allow_unknown)
        section = _assert_mapping(selectors.get("section") or {}, f"{ctx}.selectors.section")
        _assert_no_unknown_keys(section, {"id", "class", "selector"}, f"{ctx}.selectors.section", allow_unknown)
        url_element = _assert_mapping(selectors["url_element"], f"{ctx}.selectors.url_element")
        _assert_no_unknown_keys(
            url_element, {"href_pattern", "name_attribute"}, f"{ctx}.selectors.url_element", allow_unknown
        )
        name_attribute = url_element.get("name_attribute")
        if name_attribute is not None and name_attribute not in NAME_ATTRIBUTES:
            raise ConfigError(
                f"{ctx}.selectors.url_element.name_attribute must be one of {', '.join(NAME_ATTRIBUTES)}"
            )


def _validate_detail_page(detail: dict, ctx: str, allow_unknown: bool) -> None:
    _assert_required_keys(detail, {"strategy", "selectors"}, ctx)
    _assert_no_unknown_keys(detail, {"strategy", "selectors", "default_coordinates"}, ctx, allow_unknown)
    strategy = detail["strategy"]
    if strategy not in DETAIL_STRATEGIES:
        raise ConfigError(f"Unknown detail page strategy in {ctx}: {strategy}")

    selectors = _assert_mapping(detail["selectors"], f"{ctx}.selectors")
    _assert_no_unknown_keys(selectors, DETAIL_SELECTOR_KEYS, f"{ctx}.selectors", allow_unknown)

    if strategy == "selectors":
        _assert_required_keys(selectors, {"name", "latitude", "longitude"}, f"{ctx}.selectors")
    else:
        _assert_required_keys(selectors, {"name", "address"}, f"{ctx}.selectors")
        _assert_required_keys(detail, {"default_coordinates"}, ctx)

    if "default_coordinates" in detail:
        coords = _assert_mapping(detail["default_coordinates"], f"{ctx}.default_coordinates")
        _assert_required_keys(coords, {"latitude", "longitude"}, f"{ctx}.default_coordinates")


def validate_scraper_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    cfg = _assert_mapping(cfg, "scraper config")
    _assert_required_keys(cfg, TOP_REQUIRED, "scraper config")
    _assert_no_unknown_keys(cfg, TOP_KNOWN, "scraper config", allow_unknown)

    sources = cfg["sources"]
    if not isinstance(sources, dict) or not sources:
        raise ConfigError("sources must be a non-empty mapping")

    for code, source in sources.items():
        ctx = f"sources.{code}"
        source = _assert_mapping(source, ctx)
        _assert_required_keys(source, SOURCE_REQUIRED, ctx)
        _assert_no_unknown_keys(source, SOURCE_KNOWN, ctx, allow_unknown)
        _validate_homepage(_assert_mapping(source["homepage"], f"{ctx}.homepage"), f"{ctx}.homepage", allow_unknown)
        _validate_detail_page(
            _assert_mapping(source["detail_page"], f"{ctx}.detail_page"), f"{ctx}.detail_page", allow_unknown
        )

    return cfg

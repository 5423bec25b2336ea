"""Collector selection by homepage strategy."""

from __future__ import annotations

from parkscrape.collect.base import UrlCollector
from parkscrape.collect.json_api import JsonApiCollector
from parkscrape.collect.static_html import StaticHtmlCollector
from parkscrape.common.config_loader import SourceConfig
from parkscrape.common.errors import ConfigError
from parkscrape.common.http import HttpClient


def build_collector(source: SourceConfig, http_client: HttpClient) -> UrlCollector:
    strategy = source.homepage.strategy
    if strategy == "json_api":
        return JsonApiCollector(source.homepage, http_client)
    if strategy == "static_html":
        return StaticHtmlCollector(source.homepage, http_client)
    raise ConfigError(f"Unknown homepage strategy for {source.source_code}: {strategy}")

"""Extractor selection by detail page strategy."""

from __future__ import annotations

from typing import Protocol

from parkscrape.common.config_loader import SourceConfig
from parkscrape.common.errors import ConfigError
from parkscrape.common.http import Page
from parkscrape.common.models import ParkRecord
from parkscrape.extract.address import AddressGeocodingExtractor, Geocoder
from parkscrape.extract.selectors import SelectorExtractor


class RecordExtractor(Protocol):
    def extract(self, page: Page) -> ParkRecord | None:
        ...


def build_extractor(source: SourceConfig, geocoder: Geocoder | None = None) -> RecordExtractor:
    detail = source.detail_page
    if detail.strategy == "selectors":
        return SelectorExtractor(source.source_code, detail.selectors)
    if detail.strategy == "address_geocode":
        if detail.default_coordinates is None:
            raise ConfigError(f"address_geocode strategy for {source.source_code} needs default_coordinates")
        return AddressGeocodingExtractor(
            source.source_code,
            detail.selectors,
            detail.default_coordinates,
            geocoder=geocoder,
        )
    raise ConfigError(f"Unknown detail page strategy for {source.source_code}: {detail.strategy}")

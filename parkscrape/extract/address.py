"""Extractor for sources whose pages only publish a postal address.

The address block is parsed out of free text (honouring ``<br>`` line breaks),
geocoded through the configured geocoder, and the source's default coordinate
is used whenever no address is found or geocoding fails.
"""

from __future__ import annotations

import copy
import logging
from typing import Protocol

from bs4 import BeautifulSoup, Tag

from parkscrape.common.config_loader import DetailSelectors
from parkscrape.common.errors import GeocodingError
from parkscrape.common.http import Page
from parkscrape.common.logging import log_event
from parkscrape.common.models import Coordinates, ParkRecord
from parkscrape.extract.fields import build_record, extract_activities, parse_coordinate, select_text

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def geocode(self, address: str) -> Coordinates:
        ...


def address_lines(element: Tag) -> list[str]:
    block = copy.copy(element)
    for line_break in block.find_all("br"):
        line_break.replace_with("\n")
    return [line.strip() for line in block.get_text().split("\n")]


def parse_address_block(element: Tag, label: str) -> tuple[str, str]:
    """Split an address paragraph into (street, city/state/zip)."""
    parts: list[str] = []
    for line in address_lines(element):
        if label and label in line:
            line = line.replace(label, "").strip()
        if line:
            parts.append(line)
    # Only the two lines following the label make up the postal address.
    parts = parts[:2]
    street = parts[0] if parts else ""
    city_state_zip = parts[1] if len(parts) > 1 else ""
    return street, city_state_zip


def join_address(street: str, city_state_zip: str, fallback_region: str | None = None) -> str:
    if street and city_state_zip:
        return f"{street}, {city_state_zip}"
    if street and fallback_region:
        return f"{street}, {fallback_region}"
    return street


def find_address(soup: BeautifulSoup, selectors: DetailSelectors) -> str:
    if not selectors.address:
        return ""
    for element in soup.select(selectors.address):
        if selectors.address_label and selectors.address_label not in element.get_text():
            continue
        street, city_state_zip = parse_address_block(element, selectors.address_label)
        return join_address(street, city_state_zip, selectors.fallback_region)
    return ""


class AddressGeocodingExtractor:
    def __init__(
        self,
        source_code: str,
        selectors: DetailSelectors,
        default_coordinates: Coordinates,
        geocoder: Geocoder | None = None,
    ) -> None:
        self.source_code = source_code
        self.selectors = selectors
        self.default_coordinates = default_coordinates
        self.geocoder = geocoder

    def _page_coordinates(self, soup: BeautifulSoup) -> Coordinates | None:
        if not (self.selectors.latitude and self.selectors.longitude):
            return None
        latitude = parse_coordinate(select_text(soup, self.selectors.latitude))
        longitude = parse_coordinate(select_text(soup, self.selectors.longitude))
        if latitude is None or longitude is None:
            return None
        return Coordinates(latitude=latitude, longitude=longitude)

    def resolve_coordinates(self, address: str, url: str) -> Coordinates:
        if not address or self.geocoder is None:
            log_event(
                logger,
                "no address or geocoder available; using default coordinates",
                level=logging.DEBUG,
                stage="extract",
                source=self.source_code,
                url=url,
                event="GEOCODE_DEFAULT",
                status="fallback",
            )
            return self.default_coordinates
        try:
            return self.geocoder.geocode(address)
        except GeocodingError as exc:
            log_event(
                logger,
                f"failed to geocode address {address!r}: {exc}; using default coordinates",
                level=logging.WARNING,
                stage="extract",
                source=self.source_code,
                url=url,
                event="GEOCODE_FAIL",
                status="fallback",
                error_code=exc.error_code,
            )
            return self.default_coordinates

    def extract(self, page: Page) -> ParkRecord | None:
        soup = page.soup
        name = select_text(soup, self.selectors.name)
        if not name:
            log_event(
                logger,
                "skipped page without a park name",
                level=logging.WARNING,
                stage="extract",
                source=self.source_code,
                url=page.url,
                event="RECORD_SKIPPED",
                status="skipped",
            )
            return None

        address = find_address(soup, self.selectors)
        coordinates = self._page_coordinates(soup) or self.resolve_coordinates(address, page.url)
        return build_record(
            name=name,
            source_code=self.source_code,
            latitude=coordinates.latitude,
            longitude=coordinates.longitude,
            address=address,
            activities=extract_activities(
                soup, self.selectors.activities, self.selectors.activity_description_attribute
            ),
        )

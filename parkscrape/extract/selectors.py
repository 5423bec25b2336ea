"""Extractor for sources that expose name and coordinates directly on the page."""

from __future__ import annotations

import logging

from parkscrape.common.config_loader import DetailSelectors
from parkscrape.common.http import Page
from parkscrape.common.logging import log_event
from parkscrape.common.models import ParkRecord
from parkscrape.extract.fields import build_record, extract_activities, parse_coordinate, select_text

logger = logging.getLogger(__name__)


class SelectorExtractor:
    def __init__(self, source_code: str, selectors: DetailSelectors) -> None:
        self.source_code = source_code
        self.selectors = selectors

    def extract(self, page: Page) -> ParkRecord | None:
        soup = page.soup
        name = select_text(soup, self.selectors.name)
        latitude_text = select_text(soup, self.selectors.latitude)
        longitude_text = select_text(soup, self.selectors.longitude)

        record = build_record(
            name=name,
            source_code=self.source_code,
            latitude=parse_coordinate(latitude_text),
            longitude=parse_coordinate(longitude_text),
            activities=extract_activities(
                soup, self.selectors.activities, self.selectors.activity_description_attribute
            ),
        )
        if record is None:
            log_event(
                logger,
                f"skipped page with missing or invalid data (name={name!r}, "
                f"latitude={latitude_text!r}, longitude={longitude_text!r})",
                level=logging.WARNING,
                stage="extract",
                source=self.source_code,
                url=page.url,
                event="RECORD_SKIPPED",
                status="skipped",
            )
        return record

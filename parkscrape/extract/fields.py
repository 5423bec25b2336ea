"""Field-level helpers shared by the record extractors."""

from __future__ import annotations

import math

from bs4 import BeautifulSoup

from parkscrape.common.models import Activity, ParkRecord


def select_text(soup: BeautifulSoup, selector: str | None) -> str:
    if not selector:
        return ""
    element = soup.select_one(selector)
    if element is None:
        return ""
    return element.get_text(" ", strip=True)


def parse_coordinate(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        parsed = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def extract_activities(
    soup: BeautifulSoup,
    selector: str | None,
    description_attribute: str | None = None,
) -> tuple[Activity, ...]:
    if not selector:
        return ()
    activities = []
    for element in soup.select(selector):
        name = element.get_text(" ", strip=True)
        if not name:
            continue
        description = ""
        if description_attribute:
            description = (element.get(description_attribute) or "").strip()
        activities.append(Activity(name=name, description=description))
    return tuple(activities)


def build_record(
    *,
    name: str,
    source_code: str,
    latitude: float | None,
    longitude: float | None,
    address: str | None = None,
    activities: tuple[Activity, ...] = (),
) -> ParkRecord | None:
    """Return a record only when it is publishable: a name and both coordinates."""
    if not name or latitude is None or longitude is None:
        return None
    return ParkRecord(
        name=name,
        source_code=source_code,
        latitude=latitude,
        longitude=longitude,
        address=address or None,
        activities=activities,
    )

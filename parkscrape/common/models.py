"""Data models used across the pipeline."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Activity:
    name: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description}


@dataclass(frozen=True)
class ParkRecord:
    name: str
    source_code: str
    latitude: float
    longitude: float
    address: str | None = None
    activities: tuple[Activity, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "sourceCode": self.source_code,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "activities": [activity.to_dict() for activity in self.activities],
        }


@dataclass(frozen=True)
class FetchOutcome:
    """What one fetch-and-extract call produced for a single detail page."""

    url: str
    record: ParkRecord | None
    duration: float
    completed_at: datetime


@dataclass(frozen=True)
class ScrapedEvent:
    record: ParkRecord
    source_code: str
    url: str
    duration: float
    timestamp: datetime


@dataclass
class SourceResult:
    source_code: str
    records: list[ParkRecord] = field(default_factory=list)
    urls_discovered: int = 0
    failed_urls: list[str] = field(default_factory=list)
    skipped_urls: list[str] = field(default_factory=list)
    duration: float = 0.0
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunResult:
    concurrent: bool
    source_codes: list[str]
    records: list[ParkRecord] = field(default_factory=list)
    sources: dict[str, SourceResult] = field(default_factory=dict)
    error: Exception | None = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    def counts_by_source(self) -> dict[str, int]:
        counts = Counter(record.source_code for record in self.records)
        return {code: counts.get(code, 0) for code in self.source_codes}

    def succeeded_sources(self) -> list[str]:
        return [code for code in self.source_codes if code in self.sources and self.sources[code].ok]

    def failed_sources(self) -> list[str]:
        return [code for code in self.source_codes if code in self.sources and not self.sources[code].ok]


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

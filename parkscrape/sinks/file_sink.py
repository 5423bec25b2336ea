"""Subscriber that writes each scraped record to its own JSON file."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from parkscrape.common.fs import write_json
from parkscrape.common.ids import slugify
from parkscrape.common.logging import log_event
from parkscrape.common.models import ScrapedEvent

logger = logging.getLogger(__name__)


class JsonFileSink:
    """Writes ``<output_dir>/<source_code>/<slugified-name>.json``."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def path_for(self, event: ScrapedEvent) -> Path:
        # Names without ASCII letters or digits slugify to "", so key those by URL.
        slug = slugify(event.record.name) or "park-" + hashlib.sha1(event.url.encode("utf-8")).hexdigest()[:12]
        return self.output_dir / event.source_code / f"{slug}.json"

    def on_record_scraped(self, event: ScrapedEvent) -> None:
        path = self.path_for(event)
        try:
            size = write_json(path, event.record.to_dict(), sort_keys=False)
        except OSError as exc:
            log_event(
                logger,
                f"failed to write {path}: {exc}",
                level=logging.ERROR,
                stage="sink",
                source=event.source_code,
                url=event.url,
                event="FILE_WRITE_FAIL",
                status="error",
            )
            return
        log_event(
            logger,
            f"wrote {event.record.name} to {path} ({size} bytes)",
            level=logging.DEBUG,
            stage="sink",
            source=event.source_code,
            url=event.url,
            event="FILE_WRITTEN",
            status="ok",
        )

"""Run identifier and file name helpers."""

from __future__ import annotations

import re

from parkscrape.common.time_utils import utc_now

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def generate_run_id() -> str:
    return utc_now().strftime("run-%Y%m%dT%H%M%S%fZ")


def slugify(value: str) -> str:
    """Kebab-case a display name: "Starved Rock State Park" -> "starved-rock-state-park"."""
    return _NON_SLUG_CHARS.sub("-", value.lower()).strip("-")

"""Application constants."""

USER_AGENT = "parkscrape/1.0 (Educational Park Data Scraper)"
BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
}
HOMEPAGE_STRATEGIES = ("json_api", "static_html")
DETAIL_STRATEGIES = ("selectors", "address_geocode")
NAME_ATTRIBUTES = ("text", "title", "aria-label")
DEFAULT_QUEUE_SIZE = 100
DEFAULT_MAX_RETRIES = 3
DEFAULT_REQUEST_DELAY_SECONDS = 1.0
JSON_PREVIEW_CHARS = 500
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "source",
    "url",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "records",
    "error_code",
    "message",
)

"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for scraper failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration, or unknown source codes."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """Raised for failures that abort a single source."""

    error_code = "STAGE_ERROR"


class CollectionError(StageError):
    """Raised when detail-page URL discovery fails or finds nothing."""

    error_code = "COLLECTION_ERROR"


class FetchError(StageError):
    """Raised when a detail page could not be fetched within the retry budget."""

    error_code = "FETCH_ERROR"


class GeocodingError(PipelineError):
    error_code = "GEOCODING_ERROR"


class PublisherClosedError(PipelineError):
    error_code = "PUBLISHER_CLOSED"

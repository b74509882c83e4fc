"""Error taxonomy for the import pipeline.

Every error carries the HTTP status it maps to and knows how to render
itself as the JSON body returned to the caller. The FastAPI application
registers a single handler for ImportPipelineError (see gdal_worker.main).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gdal_worker import models


class ImportPipelineError(Exception):
    """Base class for errors surfaced to the caller as structured JSON."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def payload(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(ImportPipelineError):
    """Malformed or missing request fields."""

    status_code = 400


class PayloadTooLargeError(ValidationError):
    """Uploaded file exceeds the configured size limit."""

    status_code = 413


class ConfigError(ImportPipelineError):
    """Destination credentials are missing from the environment."""

    status_code = 500


class UpstreamError(ImportPipelineError):
    """A remote source could not be fetched or returned an HTML page."""

    status_code = 400


class StorageError(ImportPipelineError):
    """A downloaded source could not be written to local storage."""

    status_code = 500


class ConversionError(ImportPipelineError):
    """ogr2ogr exited non-zero, timed out, or could not be spawned.

    Wraps the ImportResult so the caller receives the exact command and
    the captured output alongside the error description.
    """

    status_code = 500

    def __init__(self, result: models.ImportResult) -> None:
        self.result = result
        super().__init__(result.error_message or "ogr2ogr failed")

    def payload(self) -> dict[str, Any]:
        return {"error": self.message, **self.result.to_payload()}

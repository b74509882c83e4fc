"""Import pipeline: resolve, probe, build, execute, report.

Stages run strictly in sequence for one request and share no state with
other requests. A downloaded source is deleted as soon as ogr2ogr returns,
on success, failure, or an exception raised by any stage after the
download.

Example:
    Run an import end to end:
        >>> from gdal_worker.services import pipeline
        >>> result = pipeline.run_import(request, settings)
        >>> result.ok, result.command
        (True, "ogr2ogr -f PostgreSQL 'PG:host=...' /tmp/gdal/... -overwrite -progress")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gdal_worker import models
from gdal_worker.services import command_builder, ingestion, srs_detection
from gdal_worker.utils import gdal_helpers

if TYPE_CHECKING:
    from gdal_worker.core import config

logger = logging.getLogger(__name__)


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + gdal_helpers.TRUNCATION_MARKER


def report_outcome(
    command: models.ConversionCommand,
    outcome: models.CommandOutcome,
    max_output_bytes: int,
) -> models.ImportResult:
    """Translate an executor outcome into the caller-facing result.

    Failures are logged with the command and captured output so an
    operator can rerun the exact invocation by hand.
    """
    stdout = _truncate(outcome.stdout, max_output_bytes)
    stderr = _truncate(outcome.stderr, max_output_bytes)

    if outcome.succeeded:
        if stderr:
            logger.info("ogr2ogr warnings: %s", stderr)
        return models.ImportResult(
            ok=True,
            command=command.printable,
            stdout=stdout,
            stderr=stderr,
        )

    message = outcome.error or "ogr2ogr failed"
    logger.error(
        "%s (exit=%s) cmd=%s output=%s",
        message,
        outcome.return_code,
        command.printable,
        stderr or stdout,
    )
    return models.ImportResult(
        ok=False,
        command=command.printable,
        stdout=stdout,
        stderr=stderr,
        error_message=message,
    )


def run_import(
    request: models.ImportRequest,
    settings: config.Settings,
) -> models.ImportResult:
    """Run one import and return its result.

    Args:
        request: Validated import parameters.
        settings: Application settings.

    Returns:
        ImportResult with ok=False when ogr2ogr failed, timed out or could
        not be started.

    Raises:
        ConfigError: If destination credentials are missing.
        ValidationError: If the request carries no source.
        UpstreamError: If the remote source cannot be downloaded.
    """
    settings.destination_dsn()

    with ingestion.resolved_source(request, settings) as source:
        has_srs = srs_detection.source_declares_srs(
            source,
            request.layer_name,
            settings,
        )
        command = command_builder.build_import_command(
            request,
            source,
            has_srs,
            settings,
        )
        logger.info("ogr2ogr cmd => %s", command.printable)
        outcome = gdal_helpers.run_command(
            command.args,
            timeout=settings.convert_timeout_seconds,
            max_output_bytes=settings.max_output_bytes,
        )

    return report_outcome(command, outcome, settings.max_output_bytes)

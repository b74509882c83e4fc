"""Best-effort detection of a declared spatial reference in a source."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from gdal_worker.services import command_builder
from gdal_worker.utils import gdal_helpers

if TYPE_CHECKING:
    from gdal_worker import models
    from gdal_worker.core import config

logger = logging.getLogger(__name__)

# A bare "Layer SRS WKT:" header is printed even when followed by
# "(unknown)", so only WKT roots and EPSG references count.
SRS_MARKERS = re.compile(
    r"\b(?:PROJCS|GEOGCS|PROJCRS|GEOGCRS|GEODCRS|COMPOUNDCRS|BOUNDCRS)\["
    r"|\bEPSG\b"
)


def build_probe_command(
    source: models.ResolvedSource,
    layer_name: str | None,
    settings: config.Settings,
) -> list[str]:
    """ogrinfo invocation listing the layer summary in read-only mode."""
    command = [settings.ogrinfo_bin, "-ro", "-so"]
    if not layer_name:
        command.append("-al")
    command.append(command_builder.gdal_source_path(source))
    if layer_name:
        command.append(layer_name)
    return command


def output_declares_srs(output: str) -> bool:
    return SRS_MARKERS.search(output) is not None


def source_declares_srs(
    source: models.ResolvedSource,
    layer_name: str | None,
    settings: config.Settings,
) -> bool:
    """Return True if ogrinfo reports a spatial reference for the source.

    Any probe failure counts as "no SRS declared"; the conversion itself
    will report a broken source.
    """
    outcome = gdal_helpers.run_command(
        build_probe_command(source, layer_name, settings),
        timeout=settings.probe_timeout_seconds,
        max_output_bytes=settings.max_output_bytes,
    )
    if not outcome.succeeded:
        logger.info(
            "SRS probe inconclusive for %s: %s",
            source.local_path,
            outcome.error or outcome.stderr.strip() or "non-zero exit",
        )
        return False

    has_srs = output_declares_srs(outcome.stdout)
    logger.debug("SRS declared in %s: %s", source.local_path, has_srs)
    return has_srs

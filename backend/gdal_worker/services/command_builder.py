"""Assembly of the ogr2ogr invocation for an import.

The command targets ogr2ogr's command-line contract exactly:

    ogr2ogr -f PostgreSQL PG:<conninfo> <source> [layer]
        -nln <table> -lco GEOMETRY_NAME=geom [-nlt PROMOTE_TO_MULTI]
        [-a_srs EPSG:<srid>] -t_srs EPSG:<srid> -overwrite -progress

``-a_srs`` is only added when the source does not declare a spatial
reference of its own; ``-t_srs`` is always present, so data always lands
in the requested SRID.
"""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

from gdal_worker import models

if TYPE_CHECKING:
    from gdal_worker.core import config

GEOMETRY_COLUMN = "geom"


def gdal_source_path(source: models.ResolvedSource) -> str:
    """Path of the source as GDAL should open it.

    Zip archives are addressed through GDAL's /vsizip/ virtual filesystem.
    """
    path = str(source.local_path)
    if source.local_path.suffix.lower() == ".zip":
        return f"/vsizip/{path}"
    return path


def postgres_destination(settings: config.Settings) -> str:
    """ogr2ogr destination for the configured database.

    Raises:
        ConfigError: If any required credential is missing.
    """
    return f"PG:{settings.destination_dsn()}"


def build_import_command(
    request: models.ImportRequest,
    source: models.ResolvedSource,
    has_srs: bool,
    settings: config.Settings,
) -> models.ConversionCommand:
    """Build the ogr2ogr command for one import.

    Args:
        request: Validated import parameters.
        source: Resolved local source file.
        has_srs: Whether the source already declares a spatial reference.
        settings: Application settings (credentials, executable name).

    Returns:
        ConversionCommand whose printable form is the shell-quoted
        rendering of exactly the arguments that get executed.

    Raises:
        ConfigError: If any destination credential is missing.
    """
    destination = postgres_destination(settings)
    epsg = f"EPSG:{request.target_srid}"

    args = [
        settings.ogr2ogr_bin,
        "-f",
        "PostgreSQL",
        destination,
        gdal_source_path(source),
    ]
    if request.layer_name:
        args.append(request.layer_name)
    args += [
        "-nln",
        request.table,
        "-lco",
        f"GEOMETRY_NAME={GEOMETRY_COLUMN}",
    ]
    if request.promote_to_multi:
        args += ["-nlt", "PROMOTE_TO_MULTI"]
    if not has_srs:
        args += ["-a_srs", epsg]
    args += ["-t_srs", epsg, "-overwrite", "-progress"]

    return models.ConversionCommand(args=tuple(args), printable=shlex.join(args))

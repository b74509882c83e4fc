"""Bounded execution wrapper for GDAL/OGR command-line utilities.

This module provides a safe interface for executing GDAL and OGR command-line
tools (ogr2ogr, ogrinfo) as subprocesses. Every run is bounded twice: by a
wall-clock timeout, after which the process is killed, and by a cap on how
much of stdout/stderr is read back into memory.

Both streams are spooled to anonymous temporary files rather than pipes, so
a tool that prints a lot (``-progress`` on a large layer, verbose driver
warnings) can never fill a pipe buffer and stall waiting for a reader.

Failures are never raised: a non-zero exit, a timeout, or a spawn error is
reported through the returned CommandOutcome so callers can decide how to
surface it.

Example:
    Execute ogr2ogr command:
        >>> from gdal_worker.utils.gdal_helpers import run_command

        >>> outcome = run_command(
        ...     ["ogr2ogr", "-f", "PostgreSQL", "PG:dbname=gis", "data.shp"],
        ...     timeout=180,
        ...     max_output_bytes=64 * 1024 * 1024,
        ... )
        >>> if not outcome.succeeded:
        ...     print(outcome.error, outcome.stderr)
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from typing import IO, TYPE_CHECKING

from gdal_worker import models

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n[output truncated]"


def read_capped(stream: IO[bytes], limit: int) -> str:
    """Read at most ``limit`` bytes from the start of a spooled stream.

    Args:
        stream: Binary file the process wrote to.
        limit: Maximum number of bytes to decode.

    Returns:
        The decoded text, with TRUNCATION_MARKER appended when the stream
        held more than ``limit`` bytes.
    """
    stream.seek(0)
    data = stream.read(limit + 1)
    text = data[:limit].decode("utf-8", errors="replace")
    if len(data) > limit:
        text += TRUNCATION_MARKER
    return text


def run_command(
    command: Iterable[str | pathlib.Path],
    timeout: float,
    max_output_bytes: int,
) -> models.CommandOutcome:
    """Execute a command with a timeout and capped output capture.

    Args:
        command: Iterable arguments to execute (e.g., ["ogr2ogr", "-f", ...]).
        timeout: Seconds to wait before the process is killed.
        max_output_bytes: Maximum bytes kept from each of stdout and stderr.

    Returns:
        CommandOutcome describing exit status, captured output and, on
        timeout or spawn failure, an error description. stderr is kept on
        success as well since ogr2ogr prints warnings there.
    """
    args = [str(part) for part in command]
    with tempfile.TemporaryFile() as out, tempfile.TemporaryFile() as err:
        try:
            process = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=out,
                stderr=err,
            )
        except OSError as exc:
            logger.error("Could not start %s: %s", args[0], exc)
            return models.CommandOutcome(
                succeeded=False,
                stdout="",
                stderr="",
                error=f"Failed to start {args[0]}: {exc}",
            )

        timed_out = False
        try:
            return_code = process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("%s exceeded %ss, killing it", args[0], timeout)
            process.kill()
            return_code = process.wait()
            timed_out = True

        stdout = read_capped(out, max_output_bytes)
        stderr = read_capped(err, max_output_bytes)

    if timed_out:
        return models.CommandOutcome(
            succeeded=False,
            stdout=stdout,
            stderr=stderr,
            return_code=return_code,
            timed_out=True,
            error=f"{args[0]} timed out after {timeout:g} seconds",
        )

    return models.CommandOutcome(
        succeeded=return_code == 0,
        stdout=stdout,
        stderr=stderr,
        return_code=return_code,
    )

"""Source resolution and scoped temp-file handling for imports.

An import reads exactly one local file. This module decides which one:
either the path of a payload the upload handler already wrote to disk, or
a fresh copy of a remote URL downloaded into a per-request scratch
directory. Downloaded copies are owned by the pipeline and removed by
resolved_source() when the import finishes, however it finishes; uploaded
payloads belong to the upload handler and are never touched here.

Example:
    Resolve a request and keep the file only for the duration of a block:
        >>> from gdal_worker.services import ingestion
        >>> with ingestion.resolved_source(request, settings) as source:
        ...     run_ogr2ogr(source.local_path)
        >>> # source.local_path is gone here if it was downloaded
"""

from __future__ import annotations

import contextlib
import logging
import pathlib
import posixpath
import shutil
import tempfile
import time
import urllib.parse
from typing import TYPE_CHECKING

import httpx

from gdal_worker import models
from gdal_worker.core import errors

if TYPE_CHECKING:
    from collections.abc import Iterator

    from gdal_worker.core import config

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "file.gml"
MAX_FILENAME_BYTES = 255
_CHUNK_SIZE = 1024 * 1024


def filename_from_url(url: str) -> str:
    """Derive a local file name from the path component of a URL.

    Query string and fragment are ignored. Falls back to DEFAULT_FILENAME
    when the last segment is empty, contains a NUL byte, or is longer than
    a filesystem name may be.
    """
    path = urllib.parse.unquote(urllib.parse.urlsplit(url).path)
    name = posixpath.basename(path)
    if (
        name in ("", ".", "..")
        or "\0" in name
        or len(name.encode("utf-8", errors="surrogateescape")) > MAX_FILENAME_BYTES
    ):
        return DEFAULT_FILENAME
    return name


def build_client(settings: config.Settings) -> httpx.Client:
    """HTTP client used for downloads, bounded by timeout and redirects."""
    return httpx.Client(
        follow_redirects=True,
        max_redirects=settings.download_max_redirects,
        timeout=settings.download_timeout_seconds,
    )


def _write_body(
    response: httpx.Response,
    target: pathlib.Path,
    max_size: int,
    deadline: float,
    timeout: float,
) -> int:
    size = 0
    with target.open("wb") as fh:
        for chunk in response.iter_bytes(_CHUNK_SIZE):
            if time.monotonic() > deadline:
                raise errors.UpstreamError(
                    f"Download timed out after {timeout:g} seconds"
                )
            size += len(chunk)
            if size > max_size:
                raise errors.UpstreamError(
                    f"Download exceeds the {max_size} byte limit"
                )
            fh.write(chunk)
    return size


def download_source(
    url: str,
    settings: config.Settings,
) -> models.ResolvedSource:
    """Fetch a remote source into a fresh per-request scratch directory.

    The status code and content type are checked before anything is
    written, so an HTML login or antivirus page never reaches the disk.
    download_timeout_seconds bounds each network operation and also the
    whole transfer, so a server trickling bytes cannot hold the request.

    Args:
        url: http(s) URL of the source file.
        settings: Application settings (scratch dir, timeout, limits).

    Returns:
        ResolvedSource pointing at the downloaded copy, owned by the
        pipeline.

    Raises:
        UpstreamError: On transport errors, too many redirects, a status
            outside 200-399, an HTML response, an oversized body, or a
            transfer that outlasts the download timeout.
        StorageError: If the body cannot be written to the scratch dir.
    """
    logger.info("Downloading %s", url)
    timeout = settings.download_timeout_seconds
    deadline = time.monotonic() + timeout
    settings.scratch_dir.mkdir(parents=True, exist_ok=True)
    try:
        with build_client(settings) as client, client.stream(
            "GET", url
        ) as response:
            if not 200 <= response.status_code < 400:
                raise errors.UpstreamError(
                    f"Download failed with HTTP {response.status_code}"
                )

            content_type = response.headers.get("content-type", "")
            if "text/html" in content_type.lower():
                raise errors.UpstreamError(
                    "The URL returned an HTML page (login or antivirus "
                    "wall?). Send the file as binary instead."
                )

            target_dir = pathlib.Path(
                tempfile.mkdtemp(prefix="import-", dir=settings.scratch_dir)
            )
            target = target_dir / filename_from_url(url)
            try:
                size = _write_body(
                    response,
                    target,
                    settings.max_download_size_bytes,
                    deadline,
                    timeout,
                )
            except (OSError, ValueError) as exc:
                shutil.rmtree(target_dir, ignore_errors=True)
                raise errors.StorageError(
                    f"Could not save download to {target}: {exc}"
                ) from exc
            except BaseException:
                shutil.rmtree(target_dir, ignore_errors=True)
                raise
    except httpx.TooManyRedirects as exc:
        raise errors.UpstreamError(
            f"Too many redirects while downloading {url}"
        ) from exc
    except httpx.HTTPError as exc:
        raise errors.UpstreamError(f"Download failed: {exc}") from exc

    logger.info("Saved %s (%dB) content-type=%s", target, size, content_type)
    return models.ResolvedSource(local_path=target, is_owned_temp=True)


def resolve_source(
    request: models.ImportRequest,
    settings: config.Settings,
) -> models.ResolvedSource:
    """Pick the local file an import should read.

    Raises:
        ValidationError: If the request carries no source at all.
        UpstreamError: If downloading the remote source fails.
    """
    if request.uploaded_file is not None:
        return models.ResolvedSource(
            local_path=request.uploaded_file.path,
            is_owned_temp=False,
        )
    if request.source_url:
        return download_source(request.source_url, settings)
    raise errors.ValidationError("No source provided")


def release_source(source: models.ResolvedSource) -> None:
    """Delete an owned temp file and its per-request directory.

    Non-owned sources are left alone. Failures are logged and never
    raised since the import result does not depend on them.
    """
    if not source.is_owned_temp:
        return
    try:
        source.local_path.unlink(missing_ok=True)
        source.local_path.parent.rmdir()
    except OSError as exc:
        logger.warning("Could not remove %s: %s", source.local_path, exc)


@contextlib.contextmanager
def resolved_source(
    request: models.ImportRequest,
    settings: config.Settings,
) -> Iterator[models.ResolvedSource]:
    """Resolve the request's source and release it when the block exits."""
    source = resolve_source(request, settings)
    try:
        yield source
    finally:
        release_source(source)

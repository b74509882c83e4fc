"""Data models for the import pipeline.

This module defines the request, intermediate and result structures that
flow through an import, along with the explicit coercion rules applied to
the loosely typed fields of an incoming payload (booleans arriving as
text, SRIDs arriving as strings, blank strings meaning "absent").

Example:
    Building a request from JSON body fields:
        >>> from gdal_worker.models import ImportRequest
        >>> request = ImportRequest.from_fields(
        ...     {"sourceUrl": "https://example.com/a.gml", "srid": "25830"},
        ...     uploaded_file=None,
        ...     default_table="parcelas_muros",
        ...     default_srid=25830,
        ... )
        >>> request.target_srid
        25830
"""

from __future__ import annotations

import dataclasses
import re
import urllib.parse
from typing import TYPE_CHECKING, Any

from gdal_worker.core import errors

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Mapping

_TABLE_NAME_RE = re.compile(
    r"^(?:[A-Za-z_][A-Za-z0-9_]*\.)?[A-Za-z_][A-Za-z0-9_]*$"
)


def coerce_bool(value: Any, default: bool) -> bool:
    """Normalize a boolean flag that may arrive as text.

    Booleans are kept as-is, ``None`` yields the default, and any other
    value is compared case-insensitively against ``"true"``.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def coerce_srid(value: Any, default: int) -> int:
    """Normalize an SRID given as an integer or a base-10 string.

    Raises:
        ValidationError: If the value is not a positive integer.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        raise errors.ValidationError(f"Invalid srid: {value!r}")
    if isinstance(value, int):
        srid = value
    else:
        try:
            srid = int(str(value).strip(), 10)
        except ValueError:
            raise errors.ValidationError(f"Invalid srid: {value!r}") from None
    if srid <= 0:
        raise errors.ValidationError(f"Invalid srid: {value!r}")
    return srid


def coerce_optional_text(value: Any) -> str | None:
    """Return a stripped string, treating blank values as absent."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def validate_table_name(name: str) -> str:
    """Validate a destination table name, optionally schema-qualified.

    Raises:
        ValidationError: If the name is not a plain SQL identifier.
    """
    if not _TABLE_NAME_RE.match(name):
        raise errors.ValidationError(f"Invalid table name: {name!r}")
    return name


def validate_source_url(url: str) -> str:
    """Accept only absolute http(s) URLs.

    Raises:
        ValidationError: For any other scheme or a URL without a host.
    """
    parsed = urllib.parse.urlsplit(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise errors.ValidationError(f"Invalid sourceUrl: {url!r}")
    return url


@dataclasses.dataclass(frozen=True)
class UploadedFile:
    """A multipart payload already written to disk by the upload handler.

    Attributes:
        path: Local path of the materialized payload.
        filename: Name declared by the client.
        content_type: MIME type declared by the client.
        size: Number of bytes written.
    """

    path: pathlib.Path
    filename: str | None
    content_type: str | None
    size: int


@dataclasses.dataclass(frozen=True)
class ImportRequest:
    """Validated parameters of a single import call.

    Exactly one of source_url or uploaded_file is set; from_fields()
    enforces that invariant.

    Attributes:
        source_url: Remote URL to download the source from.
        uploaded_file: Source received as a multipart upload.
        table: Destination table (optionally schema-qualified).
        target_srid: EPSG code the data is reprojected to.
        promote_to_multi: Whether single geometries become multi geometries.
        layer_name: Layer to read when the source holds several.
    """

    source_url: str | None
    uploaded_file: UploadedFile | None
    table: str
    target_srid: int
    promote_to_multi: bool = True
    layer_name: str | None = None

    @classmethod
    def from_fields(
        cls,
        fields: Mapping[str, Any],
        uploaded_file: UploadedFile | None,
        default_table: str,
        default_srid: int,
    ) -> ImportRequest:
        """Build a request from raw JSON or form fields.

        Args:
            fields: Body fields using the public camelCase names
                (sourceUrl, table, srid, promoteToMulti, layerName).
            uploaded_file: Materialized upload, if the body carried one.
            default_table: Table used when the field is missing or blank.
            default_srid: SRID used when the field is missing or blank.

        Returns:
            The validated ImportRequest.

        Raises:
            ValidationError: If no source or both sources are given, or a
                field cannot be coerced.
        """
        source_url = coerce_optional_text(fields.get("sourceUrl"))
        if uploaded_file is None and source_url is None:
            raise errors.ValidationError(
                'No source provided: send "sourceUrl" or a file '
                '(field "data" or "file")'
            )
        if uploaded_file is not None and source_url is not None:
            raise errors.ValidationError(
                'Send either "sourceUrl" or a file, not both'
            )
        if source_url is not None:
            validate_source_url(source_url)

        table = coerce_optional_text(fields.get("table")) or default_table
        return cls(
            source_url=source_url,
            uploaded_file=uploaded_file,
            table=validate_table_name(table),
            target_srid=coerce_srid(fields.get("srid"), default_srid),
            promote_to_multi=coerce_bool(fields.get("promoteToMulti"), True),
            layer_name=coerce_optional_text(fields.get("layerName")),
        )


@dataclasses.dataclass(frozen=True)
class ResolvedSource:
    """Local file fed to ogr2ogr.

    Attributes:
        local_path: Path of the source on the local filesystem.
        is_owned_temp: True only when the pipeline downloaded the file
            itself and is therefore responsible for deleting it.
    """

    local_path: pathlib.Path
    is_owned_temp: bool


@dataclasses.dataclass(frozen=True)
class ConversionCommand:
    """Argument vector for one ogr2ogr run and its printable form."""

    args: tuple[str, ...]
    printable: str


@dataclasses.dataclass(frozen=True)
class CommandOutcome:
    """What happened when an external command ran.

    Attributes:
        succeeded: True when the process exited with status zero.
        stdout: Captured standard output (possibly truncated).
        stderr: Captured standard error (possibly truncated).
        return_code: Exit status, None if the process never started.
        timed_out: True when the process was killed on timeout.
        error: Description of a spawn failure or timeout.
    """

    succeeded: bool
    stdout: str
    stderr: str
    return_code: int | None = None
    timed_out: bool = False
    error: str | None = None


@dataclasses.dataclass(frozen=True)
class ImportResult:
    """Structured outcome returned to the caller."""

    ok: bool
    command: str
    stdout: str
    stderr: str
    error_message: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "cmd": self.command,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }

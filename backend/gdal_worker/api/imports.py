"""Import endpoint: load an uploaded file or a remote URL into PostGIS.

``POST /import`` accepts either a JSON body or a multipart form. Both
carry the same text fields; a multipart form may additionally carry the
source file itself in a part named ``data`` or ``file``.

Fields:
    sourceUrl: Remote http(s) URL of the source (instead of a file).
    table: Destination table, optionally schema-qualified.
    srid: EPSG code the data is reprojected to.
    promoteToMulti: "true"/"false" (or a JSON boolean).
    layerName: Layer to read when the source holds several.

Example:
    Import a remote GML file:
        >>> response = client.post(
        ...     "/import",
        ...     json={
        ...         "sourceUrl": "https://example.com/a.gml",
        ...         "table": "walls",
        ...         "srid": 25830,
        ...     },
        ... )
        >>> response.json()["cmd"]
        "ogr2ogr -f PostgreSQL 'PG:host=...' ... -t_srs EPSG:25830 ..."

    Upload a zipped shapefile:
        >>> response = client.post(
        ...     "/import",
        ...     files={"data": ("parcels.zip", open("parcels.zip", "rb"))},
        ...     data={"table": "parcels", "promoteToMulti": "true"},
        ... )
"""

from __future__ import annotations

import logging
import pathlib
import shutil
import tempfile
from typing import Any

import fastapi
from starlette import concurrency, datastructures, exceptions

from gdal_worker import models
from gdal_worker.core import config, errors
from gdal_worker.services import pipeline

logger = logging.getLogger(__name__)

router = fastapi.APIRouter(tags=["import"])

UPLOAD_FIELDS = ("data", "file")
_FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _save_upload(
    file: datastructures.UploadFile,
    storage_dir: pathlib.Path,
    max_size: int,
) -> models.UploadedFile:
    """Persist an uploaded file to disk with size validation.

    Each upload gets its own directory so concurrent uploads with the same
    file name never collide; the original name (and thus its extension,
    which decides /vsizip/ handling) is kept.

    Args:
        file: Multipart file part.
        storage_dir: Directory under which the file is saved.
        max_size: Maximum allowed file size in bytes.

    Returns:
        UploadedFile describing the saved copy.

    Raises:
        PayloadTooLargeError: If the file exceeds the maximum size limit.
    """
    storage_dir.mkdir(parents=True, exist_ok=True)
    upload_dir = pathlib.Path(tempfile.mkdtemp(prefix="upload-", dir=storage_dir))
    name = pathlib.PurePath(file.filename or "").name or "upload.bin"
    target_path = upload_dir / name
    size = 0
    try:
        with target_path.open("wb") as out:
            for chunk in iter(lambda: file.file.read(1024 * 1024), b""):
                size += len(chunk)
                if size > max_size:
                    raise errors.PayloadTooLargeError("Upload too large")
                out.write(chunk)
    except BaseException:
        shutil.rmtree(upload_dir, ignore_errors=True)
        raise

    return models.UploadedFile(
        path=target_path,
        filename=file.filename,
        content_type=file.content_type,
        size=size,
    )


def _discard_upload(upload: models.UploadedFile) -> None:
    shutil.rmtree(upload.path.parent, ignore_errors=True)


async def _read_body(
    request: fastapi.Request,
) -> tuple[dict[str, Any], datastructures.UploadFile | None]:
    """Split the request body into text fields and an optional file part."""
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(_FORM_TYPES):
        try:
            form = await request.form()
        except exceptions.HTTPException as exc:
            raise errors.ValidationError(f"Malformed form body: {exc.detail}") from None
        fields: dict[str, Any] = {
            key: value for key, value in form.items() if isinstance(value, str)
        }
        for name in UPLOAD_FIELDS:
            part = form.get(name)
            if isinstance(part, datastructures.UploadFile):
                return fields, part
        return fields, None

    body = await request.body()
    if not body.strip():
        return {}, None
    try:
        payload = await request.json()
    except ValueError:
        raise errors.ValidationError("Request body is not valid JSON") from None
    if not isinstance(payload, dict):
        raise errors.ValidationError("Request body must be a JSON object")
    return payload, None


@router.post("/import")
async def import_source(
    request: fastapi.Request,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> dict[str, Any]:
    """Import the request's source into the configured database.

    Destination credentials are checked before the body is read, so a
    misconfigured worker never downloads or stores anything.

    Returns:
        ``{ok, cmd, stdout, stderr}`` when ogr2ogr succeeded.

    Raises:
        ConfigError: Destination credentials are missing (500).
        ValidationError: No source, both sources, or a bad field (400).
        UpstreamError: The remote source could not be fetched (400).
        ConversionError: ogr2ogr failed or timed out (500).
    """
    settings.destination_dsn()

    fields, part = await _read_body(request)
    uploaded: models.UploadedFile | None = None
    try:
        if part is not None:
            uploaded = await concurrency.run_in_threadpool(
                _save_upload,
                part,
                settings.upload_dir,
                settings.max_upload_size_bytes,
            )
            logger.info(
                "Upload received: %s %s %dB",
                uploaded.filename,
                uploaded.content_type,
                uploaded.size,
            )

        import_request = models.ImportRequest.from_fields(
            fields,
            uploaded_file=uploaded,
            default_table=settings.default_table,
            default_srid=settings.default_srid,
        )
        result = await concurrency.run_in_threadpool(
            pipeline.run_import,
            import_request,
            settings,
        )
    finally:
        if uploaded is not None:
            _discard_upload(uploaded)

    if not result.ok:
        raise errors.ConversionError(result)
    return result.to_payload()


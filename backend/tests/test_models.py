"""Tests for request models and the coercion rules of incoming fields."""

from __future__ import annotations

import pathlib

import pytest

from gdal_worker import models
from gdal_worker.core import errors


def _from_fields(
    fields: dict[str, object],
    uploaded: models.UploadedFile | None = None,
) -> models.ImportRequest:
    return models.ImportRequest.from_fields(
        fields,
        uploaded_file=uploaded,
        default_table="parcelas_muros",
        default_srid=25830,
    )


def _upload() -> models.UploadedFile:
    return models.UploadedFile(
        path=pathlib.Path("/tmp/a.gml"),
        filename="a.gml",
        content_type="application/gml+xml",
        size=10,
    )


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, True),
        (True, True),
        (False, False),
        ("true", True),
        ("TRUE", True),
        ("false", False),
        ("yes", False),
        ("", False),
    ],
)
def test_coerce_bool(value: object, expected: bool) -> None:
    assert models.coerce_bool(value, default=True) is expected


def test_coerce_srid() -> None:
    assert models.coerce_srid(4326, 25830) == 4326
    assert models.coerce_srid(" 3857 ", 25830) == 3857
    assert models.coerce_srid(None, 25830) == 25830
    assert models.coerce_srid("", 25830) == 25830


@pytest.mark.parametrize("value", ["abc", "4326.5", -1, 0, True])
def test_coerce_srid_rejects_invalid(value: object) -> None:
    with pytest.raises(errors.ValidationError):
        models.coerce_srid(value, 25830)


def test_from_fields_defaults() -> None:
    request = _from_fields({"sourceUrl": "https://example.com/a.gml"})
    assert request.table == "parcelas_muros"
    assert request.target_srid == 25830
    assert request.promote_to_multi is True
    assert request.layer_name is None
    assert request.uploaded_file is None


def test_from_fields_coerces_text_values() -> None:
    request = _from_fields(
        {
            "sourceUrl": "https://example.com/a.gml",
            "table": "public.walls",
            "srid": "4326",
            "promoteToMulti": "False",
            "layerName": "  Muros exteriores ",
        }
    )
    assert request.table == "public.walls"
    assert request.target_srid == 4326
    assert request.promote_to_multi is False
    assert request.layer_name == "Muros exteriores"


def test_from_fields_requires_a_source() -> None:
    with pytest.raises(errors.ValidationError):
        _from_fields({"table": "walls"})


def test_from_fields_blank_url_is_no_source() -> None:
    with pytest.raises(errors.ValidationError):
        _from_fields({"sourceUrl": "   "})


def test_from_fields_rejects_both_sources() -> None:
    with pytest.raises(errors.ValidationError):
        _from_fields({"sourceUrl": "https://example.com/a.gml"}, _upload())


def test_from_fields_accepts_upload() -> None:
    request = _from_fields({"table": "walls"}, _upload())
    assert request.uploaded_file is not None
    assert request.source_url is None


@pytest.mark.parametrize("url", ["ftp://example.com/a.gml", "/etc/passwd", "http://"])
def test_from_fields_rejects_non_http_urls(url: str) -> None:
    with pytest.raises(errors.ValidationError):
        _from_fields({"sourceUrl": url})


@pytest.mark.parametrize("table", ["bad-name!", "walls; drop table x", "1walls", "a.b.c"])
def test_validate_table_name_rejects_invalid(table: str) -> None:
    with pytest.raises(errors.ValidationError):
        models.validate_table_name(table)


def test_import_result_payload() -> None:
    result = models.ImportResult(
        ok=False,
        command="ogr2ogr x",
        stdout="",
        stderr="boom",
        error_message="ogr2ogr failed",
    )
    assert result.to_payload() == {
        "ok": False,
        "cmd": "ogr2ogr x",
        "stdout": "",
        "stderr": "boom",
    }

"""Tests for the ogrinfo-based SRS probe."""

from __future__ import annotations

import pathlib
from typing import Any

import pytest

from gdal_worker import models
from gdal_worker.core import config
from gdal_worker.services import srs_detection

NO_SRS_OUTPUT = """INFO: Open of `a.gml'
      using driver `GML' successful.

Layer name: Muros
Geometry: Polygon
Feature Count: 12
Layer SRS WKT:
(unknown)
gml_id: String (0.0) NOT NULL
"""

UTM_OUTPUT = """Layer name: Muros
Geometry: Polygon
Layer SRS WKT:
PROJCRS["ETRS89 / UTM zone 30N",
    BASEGEOGCRS["ETRS89",
        DATUM["European Terrestrial Reference System 1989"]],
    ID["EPSG",25830]]
Data axis to CRS axis mapping: 1,2
"""


def _source(name: str = "a.gml") -> models.ResolvedSource:
    return models.ResolvedSource(
        local_path=pathlib.Path("/tmp/gdal") / name,
        is_owned_temp=True,
    )


def _fake_run(
    monkeypatch: pytest.MonkeyPatch,
    outcome: models.CommandOutcome,
) -> dict[str, Any]:
    called: dict[str, Any] = {}

    def fake_run_command(command: Any, timeout: float, max_output_bytes: int) -> models.CommandOutcome:
        called["command"] = list(command)
        called["timeout"] = timeout
        return outcome

    monkeypatch.setattr(srs_detection.gdal_helpers, "run_command", fake_run_command)
    return called


@pytest.mark.parametrize(
    ("output", "expected"),
    [
        (NO_SRS_OUTPUT, False),
        (UTM_OUTPUT, True),
        ('GEOGCS["WGS 84",AUTHORITY["EPSG","4326"]]', True),
        ("PROJCS[\"unnamed\",GEOGCS[\"unknown\"]]", True),
        ("Layer SRS WKT:\nEPSG:25830", True),
        ("", False),
    ],
)
def test_output_declares_srs(output: str, expected: bool) -> None:
    assert srs_detection.output_declares_srs(output) is expected


def test_build_probe_command_all_layers() -> None:
    command = srs_detection.build_probe_command(_source(), None, config.Settings())
    assert command == ["ogrinfo", "-ro", "-so", "-al", "/tmp/gdal/a.gml"]


def test_build_probe_command_named_layer_in_zip() -> None:
    command = srs_detection.build_probe_command(
        _source("parcels.zip"),
        "Muros exteriores",
        config.Settings(),
    )
    assert command == [
        "ogrinfo",
        "-ro",
        "-so",
        "/vsizip//tmp/gdal/parcels.zip",
        "Muros exteriores",
    ]


def test_source_declares_srs_true(monkeypatch: pytest.MonkeyPatch) -> None:
    called = _fake_run(
        monkeypatch,
        models.CommandOutcome(succeeded=True, stdout=UTM_OUTPUT, stderr=""),
    )
    settings = config.Settings(probe_timeout_seconds=7)

    assert srs_detection.source_declares_srs(_source(), None, settings) is True
    assert called["command"][0] == "ogrinfo"
    assert called["timeout"] == 7


def test_source_declares_srs_false(monkeypatch: pytest.MonkeyPatch) -> None:
    _fake_run(
        monkeypatch,
        models.CommandOutcome(succeeded=True, stdout=NO_SRS_OUTPUT, stderr=""),
    )
    assert srs_detection.source_declares_srs(_source(), None, config.Settings()) is False


@pytest.mark.parametrize(
    "outcome",
    [
        models.CommandOutcome(succeeded=False, stdout=UTM_OUTPUT, stderr="", return_code=1),
        models.CommandOutcome(succeeded=False, stdout="", stderr="", error="Failed to start ogrinfo"),
        models.CommandOutcome(succeeded=False, stdout="", stderr="", timed_out=True, error="timed out"),
    ],
)
def test_probe_failure_defaults_to_no_srs(
    monkeypatch: pytest.MonkeyPatch,
    outcome: models.CommandOutcome,
) -> None:
    _fake_run(monkeypatch, outcome)
    assert srs_detection.source_declares_srs(_source(), "Muros", config.Settings()) is False

"""Tests for the FastAPI main application factory and operational routes.

This module validates that:
    - The FastAPI app is correctly instantiated via main.create_app,
    - OpenAPI metadata (title, version) matches the project contract,
    - The /healthz liveness endpoint returns plain "ok",
    - The /routes debug endpoint lists the import route,
    - Every request passes through the logging middleware.
"""

from __future__ import annotations

import logging

import pytest
from fastapi import testclient

from gdal_worker import main


def test_create_app() -> None:
    """Test that create_app returns a configured FastAPI instance."""
    app = main.create_app()
    assert app is not None
    assert app.title == "GDAL Worker"
    assert app.version == "0.1.0"


def test_healthz_endpoint() -> None:
    client = testclient.TestClient(main.create_app())
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.text == "ok"


def test_routes_endpoint_lists_import() -> None:
    client = testclient.TestClient(main.create_app())
    response = client.get("/routes")
    assert response.status_code == 200
    routes = response.json()
    assert {"path": "/import", "methods": ["POST"]} in routes
    assert any(route["path"] == "/healthz" for route in routes)


def test_requests_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    client = testclient.TestClient(main.create_app())
    with caplog.at_level(logging.INFO, logger="gdal_worker"):
        client.get("/healthz")
    assert "[req] GET /healthz" in caplog.text

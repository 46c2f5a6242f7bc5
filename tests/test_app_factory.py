"""Tests for the app factory and correlation-id middleware."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from staybook.api.factory import create_app
from staybook.observability.correlation import CORRELATION_ID_HEADER


class TestCorrelationId:
    def test_incoming_id_echoed(self):
        client = TestClient(create_app())
        response = client.get("/health", headers={CORRELATION_ID_HEADER: "req-abc-123"})
        assert response.headers[CORRELATION_ID_HEADER] == "req-abc-123"

    def test_id_minted_when_missing(self):
        client = TestClient(create_app())
        response = client.get("/health")
        cid = response.headers[CORRELATION_ID_HEADER]
        assert len(cid) == 32

    def test_oversized_id_replaced(self):
        client = TestClient(create_app())
        response = client.get("/health", headers={CORRELATION_ID_HEADER: "x" * 500})
        assert response.headers[CORRELATION_ID_HEADER] != "x" * 500


class TestRoutesMounted:
    def test_docs_disabled(self):
        client = TestClient(create_app())
        assert client.get("/docs").status_code == 404

    def test_unknown_route(self):
        client = TestClient(create_app())
        assert client.get("/nope").status_code == 404


class TestHealth:
    def test_module_app_serves_health(self):
        from staybook.api.app import app

        response = TestClient(app).get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_health_needs_no_database(self):
        with patch("staybook.infra.db.get_conn", side_effect=AssertionError("no db")):
            response = TestClient(create_app()).get("/health")
        assert response.status_code == 200

"""Tests for app wiring: error handlers, headers, logging and config."""

import json
import logging
from datetime import datetime
from unittest.mock import patch

import pytest

from db_stores import StoreError
from helpers import UploadError, check_file_bytes, default_title, summary_points
from logging_config import JSONFormatter


class TestErrorHandling:
    def test_unknown_route_is_json(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert "error" in resp.get_json()

    def test_store_failure_is_friendly_500(self, auth_client):
        with patch("blueprints.dashboard.StudySessionStoreDB.list_sessions",
                   side_effect=StoreError("database is locked")):
            resp = auth_client.get("/api/dashboard")
        assert resp.status_code == 500
        assert resp.get_json()["error"] == "Could not load your study data. Please try again."


class TestHeaders:
    def test_security_headers(self, auth_client):
        resp = auth_client.get("/api/auth/me")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"
        assert "Strict-Transport-Security" not in resp.headers

    def test_request_id_is_echoed(self, client):
        resp = client.get("/api/auth/me", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"

    def test_request_id_is_generated(self, client):
        assert len(client.get("/api/auth/me").headers["X-Request-ID"]) == 12


class TestLogging:
    def test_json_formatter(self):
        record = logging.LogRecord("study", logging.INFO, __file__, 1, "hello %s", ("there",), None)
        record.request_id = "r1"
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "hello there"
        assert entry["request_id"] == "r1"
        assert entry["level"] == "INFO"


class TestConfig:
    def test_testing_config(self, app):
        assert app.config["TESTING"] is True
        assert app.config["MIN_PASSWORD_LENGTH"] == 6

    def test_production_requires_secret(self):
        from config import ProductionConfig

        with patch.object(ProductionConfig, "SECRET_KEY", ""), \
                patch.object(ProductionConfig, "GOOGLE_API_KEY", "key"):
            with pytest.raises(RuntimeError):
                ProductionConfig.validate()


class TestHelpers:
    def test_default_title(self):
        assert default_title(datetime(2026, 3, 7)) == "Session on 3/7/2026"

    def test_summary_points_skip_blank_lines(self):
        assert summary_points("- one\n\n  \ntwo") == [
            {"bullet": True, "text": "one"},
            {"bullet": False, "text": "two"},
        ]

    def test_webp_needs_full_signature(self):
        check_file_bytes("image/webp", b"RIFF\x00\x00\x00\x00WEBPVP8 ")
        with pytest.raises(UploadError):
            check_file_bytes("image/webp", b"RIFF\x00\x00\x00\x00WAVEfmt ")

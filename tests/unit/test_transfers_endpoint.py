"""
Tests unitarios para los endpoints de transferencias.

Se inyecta un TransferService armado sobre tablas en memoria; el
TestClient se usa sin context manager para no disparar el startup.
"""
from __future__ import annotations

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from record_sync.application.use_cases.transfer_use_cases import TransferEngine, TransferService
from record_sync.application.services.error_handler import ErrorHandler
from record_sync.core.config import Settings
from record_sync.domain.entities.transfer_spec import ColumnPair, PrimaryKeyCheck, TransferSpec
from record_sync.main import create_application
from record_sync.shared.utils.audit_logger import AuditLogger


@pytest.fixture
def service(store, locks, engine_settings, notifier) -> TransferService:
    engine = TransferEngine(
        store=store,
        locks=locks,
        audit_sink=AuditLogger(),
        error_handler=ErrorHandler(notifier),
        settings=engine_settings,
        sleep=lambda s: None,
    )
    spec = TransferSpec(
        name="forecast_to_upcoming",
        description="forecast -> upcoming",
        source_table="forecast",
        destination_table="upcoming",
        column_mapping=tuple(ColumnPair(c, c) for c in (1, 2, 3, 4)),
        duplicate_check=PrimaryKeyCheck(source_col=1, dest_col=1, name_source_col=2, name_dest_col=2),
        trigger_column=4,
    )
    return TransferService(engine, {spec.name: spec})


@pytest.fixture
def client(service) -> TestClient:
    settings = Settings(APP_NAME="Record Sync Test", LOG_FILE="", AUDIT_LOG_DIR=None)
    return TestClient(create_application(settings, transfer_service=service))


class TestTransfersEndpoint:
    """Tests para /api/v1/transfers."""

    def test_health(self, client) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["app_name"] == "Record Sync Test"
        assert body["transfers"] == 1

    def test_list_transfers(self, client) -> None:
        response = client.get("/api/v1/transfers")

        assert response.status_code == 200
        assert response.json() == [
            {
                "name": "forecast_to_upcoming",
                "description": "forecast -> upcoming",
                "source_table": "forecast",
                "destination_table": "upcoming",
                "duplicate_check": "PrimaryKeyCheck",
                "sync_on_duplicate": False,
            }
        ]

    def test_run_transfer_appends(self, client, store) -> None:
        store.get_table("forecast").append_row(["SF-1", "Acme Tower", "Austin", "A"])

        response = client.post(
            "/api/v1/transfers/forecast_to_upcoming",
            json={"source_table": "forecast", "row": 2, "column": 4, "correlation_id": "req-1"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ignored"] is False
        assert body["audit"]["result"] == "success"
        assert body["audit"]["destination_row"] == 2
        assert body["audit"]["correlation_id"] == "req-1"
        assert store.get_table("upcoming").last_row() == 2

    def test_second_delivery_is_duplicate(self, client, store) -> None:
        store.get_table("forecast").append_row(["SF-1", "Acme Tower", "Austin", "A"])
        payload = {"source_table": "forecast", "row": 2}

        client.post("/api/v1/transfers/forecast_to_upcoming", json=payload)
        response = client.post("/api/v1/transfers/forecast_to_upcoming", json=payload)

        assert response.json()["audit"]["result"] == "skipped-duplicate"

    def test_non_trigger_column_is_ignored(self, client, store) -> None:
        response = client.post(
            "/api/v1/transfers/forecast_to_upcoming",
            json={"source_table": "forecast", "row": 2, "column": 1},
        )

        assert response.status_code == 200
        assert response.json() == {"ignored": True, "audit": None}
        assert store.get_table("upcoming").last_row() == 1

    def test_unknown_spec_is_404(self, client) -> None:
        response = client.post("/api/v1/transfers/nope", json={"source_table": "forecast", "row": 2})

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "SPEC_NOT_FOUND"
        assert body["details"]["available"] == ["forecast_to_upcoming"]

    def test_header_row_is_rejected(self, client) -> None:
        response = client.post("/api/v1/transfers/forecast_to_upcoming", json={"source_table": "forecast", "row": 1})

        assert response.status_code == 422

    def test_recent_audit(self, client, store) -> None:
        store.get_table("forecast").append_row(["SF-1", "Acme Tower", "Austin", "A"])
        client.post("/api/v1/transfers/forecast_to_upcoming", json={"source_table": "forecast", "row": 2})
        client.post("/api/v1/transfers/forecast_to_upcoming", json={"source_table": "forecast", "row": 2})

        response = client.get("/api/v1/transfers/audit/recent", params={"limit": 5})

        assert response.status_code == 200
        results = [e["result"] for e in response.json()]
        assert results == ["skipped-duplicate", "success"]

    def test_missing_service_is_configuration_error(self) -> None:
        settings = Settings(LOG_FILE="", AUDIT_LOG_DIR=None)
        client = TestClient(create_application(settings))

        response = client.get("/api/v1/transfers")

        assert response.status_code == 500
        assert response.json()["error"] == "CONFIGURATION"

    def test_unexpected_error_is_generic_500(self) -> None:
        broken = Mock(spec=TransferService)
        broken.handle_edit.side_effect = RuntimeError("conexión rota {x}")
        settings = Settings(LOG_FILE="", AUDIT_LOG_DIR=None)
        client = TestClient(create_application(settings, transfer_service=broken), raise_server_exceptions=False)

        response = client.post(
            "/api/v1/transfers/forecast_to_upcoming",
            json={"source_table": "forecast", "row": 2},
            headers={"X-Request-ID": "abc-123"},
        )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "INTERNAL_SERVER_ERROR"
        assert body["details"] == {"request_id": "abc-123"}
        assert "conexión rota" not in response.text

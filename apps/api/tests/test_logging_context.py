from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from opentelemetry import trace
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.contracts.api import get_directory_client
from app.core.database import Base, get_db
from app.directory import DirectoryClient
from app.logging import JsonLogFormatter
from app.main import app
from app.otel import setup_inmemory_otel
from directory_fakes import ACCOUNT_ID, CONTACT_ID, FakeDirectory, make_directory_client


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture()
def client(db_session: Session, directory: FakeDirectory) -> Generator[TestClient, None, None]:
    directory_client = make_directory_client(directory)

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_get_directory_client() -> DirectoryClient:
        return directory_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_directory_client] = override_get_directory_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    directory_client.close()


def _create_contract(client: TestClient, correlation_id: str, **overrides: object) -> dict:
    payload = {
        "title": "Log Contract",
        "description": "",
        "value": 1000,
        "contract_type": "Standard",
        "external_account_id": ACCOUNT_ID,
        "external_contact_id": CONTACT_ID,
    }
    payload.update(overrides)
    response = client.post("/contracts", json=payload, headers={"X-Correlation-Id": correlation_id})
    assert response.status_code == 201
    return response.json()


def test_logs_include_correlation_id_for_http(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    response = client.get(f"/contracts/{uuid.uuid4()}", headers={"X-Correlation-Id": "abc-123"})
    assert response.status_code == 404

    records = [record for record in caplog.records if record.name == "app.request" and record.getMessage() == "http.request"]
    assert records
    assert any(
        getattr(record, "correlation_id", None) == "abc-123"
        and getattr(record, "method", None) == "GET"
        and getattr(record, "path", None) == "/contracts/{id}"
        and getattr(record, "status_code", None) == 404
        and isinstance(getattr(record, "duration_ms", None), float)
        for record in records
    )


def test_lifecycle_logs_carry_contract_id_and_correlation_id(
    client: TestClient,
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO)
    contract = _create_contract(client, "log-corr-1")

    response = client.post(f"/contracts/{contract['id']}/validate", headers={"X-Correlation-Id": "log-corr-2"})
    assert response.status_code == 200

    contract_records = [record for record in caplog.records if record.name == "app.contracts"]
    assert any(
        record.getMessage() == "contract.created"
        and getattr(record, "contract_id", None) == contract["id"]
        and getattr(record, "correlation_id", None) == "log-corr-1"
        for record in contract_records
    )
    assert any(
        record.getMessage() == "contract.validated"
        and getattr(record, "status", None) == "Validated"
        and getattr(record, "correlation_id", None) == "log-corr-2"
        for record in contract_records
    )


def test_directory_failure_logged_as_warning(
    client: TestClient,
    directory: FakeDirectory,
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO)
    contract = _create_contract(client, "log-corr-3")
    directory.notify_status = 503

    client.post(f"/contracts/{contract['id']}/validate")
    response = client.post(f"/contracts/{contract['id']}/sign", json={"signed_by": "John Doe"})
    assert response.status_code == 200

    warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
    assert any(record.getMessage() == "directory.notify_rejected" and getattr(record, "status_code", None) == 503 for record in warnings)
    assert any(
        record.getMessage() == "contract.sign_notification_failed" and getattr(record, "contract_id", None) == contract["id"]
        for record in warnings
    )


def test_json_formatter_keeps_known_fields_only() -> None:
    record = logging.makeLogRecord(
        {
            "name": "app.contracts",
            "levelname": "INFO",
            "msg": "contract.signed",
            "contract_id": "c-1",
            "signed_by": "John Doe",
            "correlation_id": "fmt-1",
            "unrelated": "dropped",
            "error": "x" * 800,
        }
    )

    payload = json.loads(JsonLogFormatter().format(record))

    assert payload["msg"] == "contract.signed"
    assert payload["correlation_id"] == "fmt-1"
    assert payload["fields"]["contract_id"] == "c-1"
    assert payload["fields"]["signed_by"] == "John Doe"
    assert "unrelated" not in payload["fields"]
    assert len(payload["fields"]["error"]) == 500


def test_json_formatter_adds_service_and_active_trace_ids() -> None:
    setup_inmemory_otel()
    formatter = JsonLogFormatter(service="contracts-api", environment="ci")
    record = logging.makeLogRecord({"name": "app.directory", "levelname": "WARNING", "msg": "directory.timeout"})

    outside = json.loads(formatter.format(record))
    with trace.get_tracer("tests.logging").start_as_current_span("directory.fetch_account") as span:
        inside = json.loads(formatter.format(record))
        expected_trace_id = format(span.get_span_context().trace_id, "032x")

    assert outside["service"] == "contracts-api"
    assert outside["env"] == "ci"
    assert "trace_id" not in outside
    assert inside["trace_id"] == expected_trace_id
    assert len(inside["span_id"]) == 16

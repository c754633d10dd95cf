from __future__ import annotations

import os
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanKind, StatusCode
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("OTEL_ENABLED", "true")

from app.contracts.api import get_directory_client
from app.core.config import Settings
from app.core.database import Base, get_db
from app.directory import DirectoryClient
from app.main import app
from app.otel import build_resource, get_fastapi_server_request_hook, setup_inmemory_otel, setup_otel
from directory_fakes import ACCOUNT_ID, CONTACT_ID, FakeDirectory, make_directory_client, timeout_fault


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
def span_exporter() -> InMemorySpanExporter:
    exporter = setup_inmemory_otel()
    exporter.clear()
    return exporter


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


def _create_contract(client: TestClient, correlation_id: str) -> dict:
    response = client.post(
        "/contracts",
        json={
            "title": "OTel Contract",
            "description": "",
            "value": 1000,
            "contract_type": "Standard",
            "external_account_id": ACCOUNT_ID,
            "external_contact_id": CONTACT_ID,
        },
        headers={"X-Correlation-Id": correlation_id},
    )
    assert response.status_code == 201
    return response.json()


def test_request_span_contains_correlation_id(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    _create_contract(client, "otel-corr-1")

    spans = span_exporter.get_finished_spans()
    assert spans
    assert any(span.attributes.get("correlation_id") == "otel-corr-1" for span in spans)


def test_validate_span_wraps_directory_call(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    contract = _create_contract(client, "otel-corr-2")
    span_exporter.clear()

    response = client.post(f"/contracts/{contract['id']}/validate", headers={"X-Correlation-Id": "otel-corr-3"})
    assert response.status_code == 200

    spans = span_exporter.get_finished_spans()
    validate_spans = [span for span in spans if span.name == "contracts.validate"]
    directory_spans = [span for span in spans if span.name == "directory.validate_contract"]
    assert validate_spans
    assert directory_spans

    validate_span = validate_spans[0]
    assert validate_span.attributes.get("contract_id") == contract["id"]
    assert validate_span.attributes.get("correlation_id") == "otel-corr-3"
    assert validate_span.attributes.get("is_valid") is True
    assert directory_spans[0].parent is not None
    assert directory_spans[0].parent.span_id == validate_span.context.span_id
    assert directory_spans[0].attributes.get("http.status_code") == 200


def test_directory_timeout_span_has_no_status_code(
    client: TestClient,
    directory: FakeDirectory,
    span_exporter: InMemorySpanExporter,
) -> None:
    contract = _create_contract(client, "otel-corr-4")
    directory.faults["contract/validate"] = timeout_fault
    span_exporter.clear()

    response = client.post(f"/contracts/{contract['id']}/validate")
    assert response.status_code == 502

    directory_spans = [span for span in span_exporter.get_finished_spans() if span.name == "directory.validate_contract"]
    assert directory_spans
    assert "http.status_code" not in directory_spans[0].attributes
    assert directory_spans[0].status.status_code == StatusCode.ERROR
    assert directory_spans[0].events[0].name == "exception"


def test_directory_span_is_client_span_for_peer(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    _create_contract(client, "otel-corr-5")

    spans = {span.name: span for span in span_exporter.get_finished_spans()}
    account_span = spans["directory.fetch_account"]
    assert account_span.kind == SpanKind.CLIENT
    assert account_span.attributes.get("peer.service") == "directory"
    assert account_span.attributes.get("directory.operation") == "fetch_account"
    assert account_span.attributes.get("http.url") == f"/services/data/v59.0/sobjects/Account/{ACCOUNT_ID}"
    assert account_span.attributes.get("correlation_id") == "otel-corr-5"


class _RecordingSpan:
    def __init__(self) -> None:
        self.attributes: dict[str, object] = {}

    def is_recording(self) -> bool:
        return True

    def set_attribute(self, key: str, value: object) -> None:
        self.attributes[key] = value


def test_request_hook_skips_oversized_correlation_id() -> None:
    hook = get_fastapi_server_request_hook()
    accepted = _RecordingSpan()
    oversized = _RecordingSpan()

    hook(accepted, {"headers": [(b"x-correlation-id", b" hook-corr-1 ")]})
    hook(oversized, {"headers": [(b"x-correlation-id", b"x" * 129)]})

    assert accepted.attributes == {"correlation_id": "hook-corr-1"}
    assert oversized.attributes == {}


def test_resource_describes_service_from_settings() -> None:
    settings = Settings(otel_service_name="contracts-api-test", app_version="9.9.9", app_env="ci")

    attributes = build_resource(settings).attributes

    assert attributes["service.name"] == "contracts-api-test"
    assert attributes["service.version"] == "9.9.9"
    assert attributes["deployment.environment"] == "ci"


def test_setup_otel_disabled_returns_none() -> None:
    assert setup_otel(Settings(otel_enabled=False)) is None

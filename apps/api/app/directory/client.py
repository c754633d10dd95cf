from __future__ import annotations

import logging
import time
from typing import Any, Protocol, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from app.context import get_correlation_id
from app.directory.config import DirectoryClientConfig
from app.directory.errors import DirectoryProtocolError, DirectoryTransportError
from app.directory.results import Absent, Found, LookupResult, TransportFailure, unwrap_lookup
from app.directory.schemas import (
    DirectoryAccount,
    DirectoryContact,
    DirectoryContactsPage,
    SignedNotification,
    ValidationRequest,
    ValidationResult,
)
from app.metrics import observe_directory_request
from app.otel import directory_span


logger = logging.getLogger("app.directory")

ModelT = TypeVar("ModelT", bound=BaseModel)


class DirectoryClient(Protocol):
    def fetch_account(self, account_id: str) -> DirectoryAccount | None: ...

    def fetch_contact(self, contact_id: str) -> DirectoryContact | None: ...

    def fetch_contacts_for_account(self, account_id: str) -> list[DirectoryContact]: ...

    def validate_contract(
        self,
        account_id: str,
        contact_id: str,
        value: Any,
        contract_type: str,
    ) -> ValidationResult: ...

    def notify_signed(self, account_id: str, contract_id: str) -> bool: ...


def _outcome_for_status(status_code: int) -> str:
    if 200 <= status_code < 300:
        return "success"
    if status_code == 404:
        return "not_found"
    if status_code < 500:
        return "client_error"
    return "server_error"


class HttpDirectoryClient:
    """Salesforce-style REST client for the external directory service.

    Every call is a single request bounded by the configured timeout. Nothing
    is retried.
    """

    def __init__(self, config: DirectoryClientConfig, *, transport: httpx.BaseTransport | None = None) -> None:
        self.config = config
        self._http = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> HttpDirectoryClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def lookup_account(self, account_id: str) -> LookupResult[DirectoryAccount]:
        return self._lookup("fetch_account", f"sobjects/Account/{quote(account_id, safe='')}", DirectoryAccount)

    def lookup_contact(self, contact_id: str) -> LookupResult[DirectoryContact]:
        return self._lookup("fetch_contact", f"sobjects/Contact/{quote(contact_id, safe='')}", DirectoryContact)

    def fetch_account(self, account_id: str) -> DirectoryAccount | None:
        return unwrap_lookup(self.lookup_account(account_id))

    def fetch_contact(self, contact_id: str) -> DirectoryContact | None:
        return unwrap_lookup(self.lookup_contact(contact_id))

    def fetch_contacts_for_account(self, account_id: str) -> list[DirectoryContact]:
        operation = "fetch_contacts_for_account"
        response = self._send(operation, "GET", f"sobjects/Account/{quote(account_id, safe='')}/Contacts")
        if not response.is_success:
            raise self._status_error(operation, response)
        page = self._parse(operation, response, DirectoryContactsPage)
        return page.records

    def validate_contract(
        self,
        account_id: str,
        contact_id: str,
        value: Any,
        contract_type: str,
    ) -> ValidationResult:
        operation = "validate_contract"
        body = ValidationRequest(
            account_id=account_id,
            contact_id=contact_id,
            contract_value=value,
            contract_type=contract_type,
        )
        response = self._send(operation, "POST", "contract/validate", json=body.model_dump(mode="json", by_alias=True))
        if not response.is_success:
            raise self._status_error(operation, response)
        return self._parse(operation, response, ValidationResult)

    def notify_signed(self, account_id: str, contract_id: str) -> bool:
        operation = "notify_signed"
        body = SignedNotification(account_id=account_id, contract_id=contract_id)
        response = self._send(operation, "POST", "contract/notify", json=body.model_dump(mode="json", by_alias=True))
        if not response.is_success:
            logger.warning(
                "directory.notify_rejected",
                extra={
                    "operation": operation,
                    "status_code": response.status_code,
                    "retry_after": response.headers.get("retry-after"),
                },
            )
        return response.is_success

    def _lookup(self, operation: str, resource: str, model: type[ModelT]) -> LookupResult[ModelT]:
        try:
            response = self._send(operation, "GET", resource)
        except DirectoryTransportError as exc:
            return TransportFailure(exc)

        if response.status_code == httpx.codes.NOT_FOUND:
            return Absent()
        if not response.is_success:
            return TransportFailure(self._status_error(operation, response))
        try:
            return Found(self._parse(operation, response, model))
        except DirectoryProtocolError as exc:
            return TransportFailure(exc)

    def _send(self, operation: str, method: str, resource: str, *, json: Any = None) -> httpx.Response:
        path = f"{self.config.api_root}/{resource}"
        headers: dict[str, str] = {}
        correlation_id = get_correlation_id()
        if correlation_id:
            headers["x-correlation-id"] = correlation_id

        with directory_span(operation, method, path) as span:
            started = time.perf_counter()
            try:
                response = self._http.request(method, path, json=json, headers=headers)
            except httpx.TimeoutException as exc:
                observe_directory_request(operation, "timeout", time.perf_counter() - started)
                logger.warning("directory.timeout", extra={"operation": operation, "error": str(exc)})
                raise DirectoryTransportError(
                    operation,
                    f"timed out after {self.config.timeout_seconds}s",
                    timed_out=True,
                ) from exc
            except httpx.TransportError as exc:
                observe_directory_request(operation, "connection_error", time.perf_counter() - started)
                logger.warning("directory.connection_error", extra={"operation": operation, "error": str(exc)})
                raise DirectoryTransportError(operation, f"connection failed: {exc}") from exc

            span.set_attribute("http.status_code", response.status_code)
            observe_directory_request(
                operation,
                _outcome_for_status(response.status_code),
                time.perf_counter() - started,
            )
            return response

    @staticmethod
    def _status_error(operation: str, response: httpx.Response) -> DirectoryTransportError:
        retry_after = response.headers.get("retry-after")
        logger.warning(
            "directory.unexpected_status",
            extra={
                "operation": operation,
                "status_code": response.status_code,
                "retry_after": retry_after,
                "error": response.text,
            },
        )
        return DirectoryTransportError(
            operation,
            f"directory responded with status {response.status_code}",
            status_code=response.status_code,
            retry_after=retry_after,
        )

    @staticmethod
    def _parse(operation: str, response: httpx.Response, model: type[ModelT]) -> ModelT:
        if not response.content:
            raise DirectoryProtocolError(operation, "empty response body", status_code=response.status_code)
        try:
            payload = response.json()
        except ValueError as exc:
            raise DirectoryProtocolError(operation, "response body is not JSON", status_code=response.status_code) from exc
        if payload is None:
            raise DirectoryProtocolError(operation, "response body is null", status_code=response.status_code)
        try:
            return model.model_validate(payload)
        except ValueError as exc:
            raise DirectoryProtocolError(
                operation,
                f"unexpected response shape: {exc}",
                status_code=response.status_code,
            ) from exc

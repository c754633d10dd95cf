from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from app.context import get_correlation_id
from app.contracts.errors import ContractError, ContractNotFoundError, InvalidContractStateError, ReferenceNotFoundError
from app.contracts.schemas import ContractCreate, ContractRead, ContractSign, ContractUpdate
from app.contracts.service import ContractService
from app.core.database import get_db
from app.directory.client import DirectoryClient
from app.directory.errors import DirectoryTransportError


router = APIRouter(prefix="/contracts", tags=["contracts"])


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    details: Any
    correlation_id: str | None


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    payload = ErrorEnvelope(code=code, message=message, details=details, correlation_id=correlation_id)
    return JSONResponse(status_code=status_code, content=payload.__dict__)


def _contract_error_response(request: Request, exc: ContractError) -> JSONResponse:
    if isinstance(exc, ContractNotFoundError):
        return error_response(
            request,
            status_code=status.HTTP_404_NOT_FOUND,
            code="contract_not_found",
            message=str(exc),
            details={"contract_id": str(exc.contract_id)},
        )
    if isinstance(exc, InvalidContractStateError):
        return error_response(
            request,
            status_code=status.HTTP_400_BAD_REQUEST,
            code="contract_invalid_state",
            message=str(exc),
            details={"contract_id": str(exc.contract_id), "status": exc.status},
        )
    if isinstance(exc, ReferenceNotFoundError):
        return error_response(
            request,
            status_code=status.HTTP_400_BAD_REQUEST,
            code="contract_reference_not_found",
            message=str(exc),
            details={"kind": exc.kind, "reference_id": exc.reference_id},
        )
    raise exc


def _directory_error_response(request: Request, exc: DirectoryTransportError) -> JSONResponse:
    return error_response(
        request,
        status_code=status.HTTP_502_BAD_GATEWAY,
        code="directory_unavailable",
        message=f"directory service call failed: {exc}",
        details={
            "operation": exc.operation,
            "status_code": exc.status_code,
            "timed_out": exc.timed_out,
            "retry_after": exc.retry_after,
        },
    )


def get_directory_client(request: Request) -> DirectoryClient:
    return request.app.state.directory_client


def get_contract_service(directory: DirectoryClient = Depends(get_directory_client)) -> ContractService:
    return ContractService(directory=directory)


@router.get("", response_model=list[ContractRead])
def list_contracts(
    db: Session = Depends(get_db),
    service: ContractService = Depends(get_contract_service),
) -> list[ContractRead]:
    return service.list_contracts(db)


@router.get("/{contract_id}", response_model=ContractRead)
def get_contract(
    request: Request,
    contract_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: ContractService = Depends(get_contract_service),
) -> ContractRead | JSONResponse:
    try:
        return service.get_contract(db, contract_id)
    except ContractError as exc:
        return _contract_error_response(request, exc)


@router.post("", response_model=ContractRead, status_code=status.HTTP_201_CREATED)
def create_contract(
    request: Request,
    response: Response,
    dto: ContractCreate,
    db: Session = Depends(get_db),
    service: ContractService = Depends(get_contract_service),
) -> ContractRead | JSONResponse:
    try:
        contract = service.create_contract(db, dto)
    except ContractError as exc:
        return _contract_error_response(request, exc)
    except DirectoryTransportError as exc:
        return _directory_error_response(request, exc)
    response.headers["Location"] = f"{router.prefix}/{contract.id}"
    return contract


@router.put("/{contract_id}", response_model=ContractRead)
def update_contract(
    request: Request,
    contract_id: uuid.UUID,
    dto: ContractUpdate,
    db: Session = Depends(get_db),
    service: ContractService = Depends(get_contract_service),
) -> ContractRead | JSONResponse:
    try:
        return service.update_contract(db, contract_id, dto)
    except ContractError as exc:
        return _contract_error_response(request, exc)


@router.delete("/{contract_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
def delete_contract(
    request: Request,
    contract_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: ContractService = Depends(get_contract_service),
) -> Response:
    try:
        service.delete_contract(db, contract_id)
    except ContractError as exc:
        return _contract_error_response(request, exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{contract_id}/validate", response_model=ContractRead)
def validate_contract(
    request: Request,
    contract_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: ContractService = Depends(get_contract_service),
) -> ContractRead | JSONResponse:
    try:
        return service.validate_contract(db, contract_id)
    except ContractError as exc:
        return _contract_error_response(request, exc)
    except DirectoryTransportError as exc:
        return _directory_error_response(request, exc)


@router.post("/{contract_id}/sign", response_model=ContractRead)
def sign_contract(
    request: Request,
    contract_id: uuid.UUID,
    dto: ContractSign,
    db: Session = Depends(get_db),
    service: ContractService = Depends(get_contract_service),
) -> ContractRead | JSONResponse:
    try:
        return service.sign_contract(db, contract_id, dto)
    except ContractError as exc:
        return _contract_error_response(request, exc)
    except DirectoryTransportError as exc:
        return _directory_error_response(request, exc)

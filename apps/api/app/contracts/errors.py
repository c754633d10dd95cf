from __future__ import annotations

import uuid


class ContractError(Exception):
    """Base error for contract lifecycle failures."""


class ContractNotFoundError(ContractError):
    def __init__(self, contract_id: uuid.UUID) -> None:
        self.contract_id = contract_id
        super().__init__(f"contract {contract_id} not found")


class InvalidContractStateError(ContractError):
    """Raised when an operation is not allowed from the contract's current status."""

    def __init__(self, contract_id: uuid.UUID, status: str, message: str) -> None:
        self.contract_id = contract_id
        self.status = status
        super().__init__(message)


class ReferenceNotFoundError(ContractError):
    """Raised when a new contract points at a directory account or contact that does not exist."""

    def __init__(self, kind: str, reference_id: str) -> None:
        self.kind = kind
        self.reference_id = reference_id
        super().__init__(f"directory {kind} {reference_id} not found")

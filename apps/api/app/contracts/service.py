from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from opentelemetry import trace
from sqlalchemy.orm import Session

from app.context import get_correlation_id
from app.contracts.errors import ContractNotFoundError, InvalidContractStateError, ReferenceNotFoundError
from app.contracts.models import Contract, ContractStatus, utcnow
from app.contracts.repository import ContractRepository
from app.contracts.schemas import ContractCreate, ContractRead, ContractSign, ContractUpdate
from app.directory.client import DirectoryClient
from app.directory.errors import DirectoryTransportError
from app.metrics import observe_contract_transition, observe_sign_notification_failed


logger = logging.getLogger("app.contracts")
tracer = trace.get_tracer("app.contracts.service")

_VALIDATION_LOCKED_STATUSES = (
    ContractStatus.PENDING_SIGNATURE,
    ContractStatus.SIGNED,
    ContractStatus.CANCELLED,
)


@dataclass(slots=True)
class ContractService:
    """Contract lifecycle on top of the store and the directory service.

    Draft -> PendingValidation -> Validated | Rejected, then
    Validated -> PendingSignature -> Signed. Editing a Validated contract
    sends it back to Draft and a Signed contract cannot be validated again.
    Directory transport failures are not caught here.
    """

    directory: DirectoryClient
    repository: ContractRepository = field(default_factory=ContractRepository)

    def create_contract(self, session: Session, dto: ContractCreate) -> ContractRead:
        with tracer.start_as_current_span("contracts.create") as span:
            span.set_attribute("correlation_id", get_correlation_id() or "")
            span.set_attribute("external_account_id", dto.external_account_id)
            logger.info(
                "contract.create_requested",
                extra={"external_account_id": dto.external_account_id, "external_contact_id": dto.external_contact_id},
            )

            account = self.directory.fetch_account(dto.external_account_id)
            contact = self.directory.fetch_contact(dto.external_contact_id)
            if account is None:
                raise ReferenceNotFoundError("account", dto.external_account_id)
            if contact is None:
                raise ReferenceNotFoundError("contact", dto.external_contact_id)

            contract = Contract(
                id=uuid.uuid4(),
                title=dto.title,
                description=dto.description,
                value=dto.value,
                contract_type=dto.contract_type,
                status=ContractStatus.DRAFT.value,
                external_account_id=dto.external_account_id,
                external_contact_id=dto.external_contact_id,
                account_name=account.name,
                contact_name=contact.full_name,
                contact_email=contact.email,
            )
            self.repository.add(session, contract)
            span.set_attribute("contract_id", str(contract.id))

            logger.info("contract.created", extra={"contract_id": str(contract.id), "status": contract.status})
            return ContractRead.model_validate(contract)

    def get_contract(self, session: Session, contract_id: uuid.UUID) -> ContractRead:
        return ContractRead.model_validate(self._get_contract(session, contract_id))

    def list_contracts(self, session: Session) -> list[ContractRead]:
        return [ContractRead.model_validate(row) for row in self.repository.list_all(session)]

    def update_contract(self, session: Session, contract_id: uuid.UUID, dto: ContractUpdate) -> ContractRead:
        with tracer.start_as_current_span("contracts.update") as span:
            span.set_attribute("contract_id", str(contract_id))
            contract = self._get_contract(session, contract_id)
            if contract.status == ContractStatus.SIGNED:
                raise InvalidContractStateError(contract.id, contract.status, "cannot update a signed contract")

            contract.title = dto.title
            contract.description = dto.description
            contract.value = dto.value
            contract.contract_type = dto.contract_type
            contract.updated_at = utcnow()

            transitions: list[tuple[str, str]] = []
            # any edit invalidates a previous validation
            if contract.status == ContractStatus.VALIDATED:
                transitions.append(self._transition(contract, ContractStatus.DRAFT))
                contract.is_validated = None
                contract.validation_message = None

            self.repository.save(session, contract)
            _observe_transitions(transitions)
            logger.info("contract.updated", extra={"contract_id": str(contract.id), "status": contract.status})
            return ContractRead.model_validate(contract)

    def delete_contract(self, session: Session, contract_id: uuid.UUID) -> None:
        with tracer.start_as_current_span("contracts.delete") as span:
            span.set_attribute("contract_id", str(contract_id))
            contract = self._get_contract(session, contract_id)
            if contract.status == ContractStatus.SIGNED:
                raise InvalidContractStateError(contract.id, contract.status, "cannot delete a signed contract")

            self.repository.delete(session, contract)
            logger.info("contract.deleted", extra={"contract_id": str(contract_id)})

    def validate_contract(self, session: Session, contract_id: uuid.UUID) -> ContractRead:
        with tracer.start_as_current_span("contracts.validate") as span:
            span.set_attribute("contract_id", str(contract_id))
            span.set_attribute("correlation_id", get_correlation_id() or "")
            contract = self._get_contract(session, contract_id)
            if contract.status in _VALIDATION_LOCKED_STATUSES:
                raise InvalidContractStateError(
                    contract.id,
                    contract.status,
                    "cannot validate a contract that is being or has been signed",
                )

            logger.info("contract.validation_started", extra={"contract_id": str(contract.id), "status": contract.status})
            pending = self._transition(contract, ContractStatus.PENDING_VALIDATION)
            # PendingValidation stays persisted if the directory call fails
            self.repository.save(session, contract)
            _observe_transitions([pending])

            try:
                result = self.directory.validate_contract(
                    contract.external_account_id,
                    contract.external_contact_id,
                    contract.value,
                    contract.contract_type,
                )
            except DirectoryTransportError as exc:
                logger.warning(
                    "contract.validation_failed",
                    extra={"contract_id": str(contract.id), "status": contract.status, "error": str(exc)},
                )
                raise

            contract.is_validated = result.is_valid
            contract.validation_message = result.validation_message
            outcome = self._transition(contract, ContractStatus.VALIDATED if result.is_valid else ContractStatus.REJECTED)
            contract.updated_at = utcnow()
            self.repository.save(session, contract)
            _observe_transitions([outcome])

            span.set_attribute("is_valid", result.is_valid)
            logger.info("contract.validated", extra={"contract_id": str(contract.id), "status": contract.status})
            return ContractRead.model_validate(contract)

    def sign_contract(self, session: Session, contract_id: uuid.UUID, dto: ContractSign) -> ContractRead:
        with tracer.start_as_current_span("contracts.sign") as span:
            span.set_attribute("contract_id", str(contract_id))
            span.set_attribute("correlation_id", get_correlation_id() or "")
            contract = self._get_contract(session, contract_id)
            if contract.status != ContractStatus.VALIDATED:
                raise InvalidContractStateError(
                    contract.id,
                    contract.status,
                    "contract must be validated before signing",
                )

            pending = self._transition(contract, ContractStatus.PENDING_SIGNATURE)
            try:
                notified = self.directory.notify_signed(contract.external_account_id, str(contract.id))
            except DirectoryTransportError as exc:
                session.rollback()
                logger.warning(
                    "contract.sign_notification_error",
                    extra={"contract_id": str(contract_id), "error": str(exc)},
                )
                raise

            if not notified:
                observe_sign_notification_failed()
                logger.warning("contract.sign_notification_failed", extra={"contract_id": str(contract.id)})

            now = utcnow()
            signed = self._transition(contract, ContractStatus.SIGNED)
            contract.signed_at = now
            contract.signed_by = dto.signed_by
            contract.updated_at = now
            self.repository.save(session, contract)
            _observe_transitions([pending, signed])

            span.set_attribute("notified", notified)
            logger.info(
                "contract.signed",
                extra={"contract_id": str(contract.id), "status": contract.status, "signed_by": dto.signed_by},
            )
            return ContractRead.model_validate(contract)

    def _get_contract(self, session: Session, contract_id: uuid.UUID) -> Contract:
        contract = self.repository.get(session, contract_id)
        if contract is None:
            raise ContractNotFoundError(contract_id)
        return contract

    @staticmethod
    def _transition(contract: Contract, target: ContractStatus) -> tuple[str, str]:
        previous = ContractStatus(contract.status)
        contract.status = target.value
        logger.debug(
            "contract.status_changed",
            extra={"contract_id": str(contract.id), "previous_status": previous.value, "status": target.value},
        )
        return previous.value, target.value


def _observe_transitions(transitions: list[tuple[str, str]]) -> None:
    # only called once the new status is committed
    for from_status, to_status in transitions:
        observe_contract_transition(from_status, to_status)

from app.contracts.api import router
from app.contracts.errors import ContractError, ContractNotFoundError, InvalidContractStateError, ReferenceNotFoundError
from app.contracts.models import Contract, ContractStatus
from app.contracts.schemas import ContractCreate, ContractRead, ContractSign, ContractUpdate
from app.contracts.service import ContractService

__all__ = [
    "router",
    "Contract",
    "ContractStatus",
    "ContractCreate",
    "ContractUpdate",
    "ContractSign",
    "ContractRead",
    "ContractService",
    "ContractError",
    "ContractNotFoundError",
    "InvalidContractStateError",
    "ReferenceNotFoundError",
]

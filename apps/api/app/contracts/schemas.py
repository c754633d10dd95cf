from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.contracts.models import ContractStatus


class ContractCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    value: Decimal = Field(ge=Decimal("0"), decimal_places=2)
    contract_type: str = Field(min_length=1, max_length=50)
    external_account_id: str = Field(min_length=1, max_length=18)
    external_contact_id: str = Field(min_length=1, max_length=18)


class ContractUpdate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    value: Decimal = Field(ge=Decimal("0"), decimal_places=2)
    contract_type: str = Field(min_length=1, max_length=50)


class ContractSign(BaseModel):
    signed_by: str = Field(min_length=1, max_length=200)


class ContractRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    value: Decimal
    contract_type: str
    status: ContractStatus
    external_account_id: str
    external_contact_id: str
    account_name: str | None
    contact_name: str | None
    contact_email: str | None
    is_validated: bool | None
    validation_message: str | None
    created_at: datetime
    updated_at: datetime | None
    signed_at: datetime | None
    signed_by: str | None

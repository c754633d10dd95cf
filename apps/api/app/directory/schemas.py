from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class DirectoryModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DirectoryAccount(DirectoryModel):
    id: str
    name: str
    industry: str | None = None
    account_type: str | None = Field(default=None, alias="type")
    billing_city: str | None = None
    billing_country: str | None = None
    phone: str | None = None
    website: str | None = None
    annual_revenue: Decimal | None = None
    number_of_employees: int | None = None
    is_active: bool = True


class DirectoryContact(DirectoryModel):
    id: str
    account_id: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    title: str | None = None
    department: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class DirectoryContactsPage(DirectoryModel):
    records: list[DirectoryContact] = Field(default_factory=list)


class ValidationRequest(DirectoryModel):
    account_id: str
    contact_id: str
    contract_value: Decimal
    contract_type: str

    @field_serializer("contract_value")
    def _serialize_contract_value(self, value: Decimal) -> float:
        # the directory compares contractValue numerically
        return float(value)


class ValidationResult(DirectoryModel):
    is_valid: bool
    validation_message: str | None = None
    approval_status: str | None = None
    credit_limit: Decimal | None = None
    required_approvers: list[str] | None = None


class SignedNotification(DirectoryModel):
    account_id: str
    contract_id: str

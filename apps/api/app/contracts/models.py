from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContractStatus(str, enum.Enum):
    DRAFT = "Draft"
    PENDING_VALIDATION = "PendingValidation"
    VALIDATED = "Validated"
    PENDING_SIGNATURE = "PendingSignature"
    SIGNED = "Signed"
    REJECTED = "Rejected"
    # reserved; nothing sets it yet
    CANCELLED = "Cancelled"


class Contract(Base):
    __tablename__ = "contract"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(String(2000), nullable=False, default="")
    value: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    contract_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ContractStatus.DRAFT.value,
        server_default=ContractStatus.DRAFT.value,
    )

    external_account_id: Mapped[str] = mapped_column(String(18), nullable=False)
    external_contact_id: Mapped[str] = mapped_column(String(18), nullable=False)

    account_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    contact_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(200), nullable=True)

    is_validated: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    validation_message: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    signed_by: Mapped[str | None] = mapped_column(String(200), nullable=True)


Index("ix_contract_external_account_id", Contract.external_account_id)
Index("ix_contract_status", Contract.status)

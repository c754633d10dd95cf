from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.contracts.models import Contract


class ContractRepository:
    def add(self, session: Session, contract: Contract) -> Contract:
        session.add(contract)
        session.commit()
        session.refresh(contract)
        return contract

    def get(self, session: Session, contract_id: uuid.UUID) -> Contract | None:
        return session.get(Contract, contract_id)

    def list_all(self, session: Session) -> list[Contract]:
        return list(session.scalars(select(Contract).order_by(Contract.created_at.desc())).all())

    def save(self, session: Session, contract: Contract) -> Contract:
        session.commit()
        session.refresh(contract)
        return contract

    def delete(self, session: Session, contract: Contract) -> None:
        session.delete(contract)
        session.commit()

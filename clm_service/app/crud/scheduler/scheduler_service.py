import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from shared.core.database import clm_session_scope
from ...enum.contract_enum import AuditAction, AuditModule, ContractAction, ContractStatus
from ...models.contracts.contracts import Contract
from ...schemas.system.audit_logs_schemas import AuditEntry
from ..contracts.contract_workflow import transition, workflow_unit
from ..system import audit_crud

logger = logging.getLogger(__name__)


def process_contract_expiry(db: Session, today: Optional[date] = None) -> int:
    today = today or date.today()

    contracts = (
        db.query(Contract)
        .filter(
            Contract.status == ContractStatus.ACTIVE,
            Contract.end_date.isnot(None),
            Contract.end_date < today,
            Contract.is_deleted == False,
        )
        .all()
    )

    if not contracts:
        return 0

    with workflow_unit(db):
        for contract in contracts:
            transition(contract, ContractAction.EXPIRE, None)

    for contract in contracts:
        audit_crud.record(AuditEntry(
            org_id=contract.org_id,
            contract_id=contract.id,
            user_id=None,
            action=AuditAction.CONTRACT_EXPIRED,
            module=AuditModule.SYSTEM,
            target_type="Contract",
            target_id=str(contract.id),
            old_value={"status": ContractStatus.ACTIVE},
            new_value={"status": contract.status},
            metadata={"end_date": contract.end_date},
        ))

    logger.info("Expired %s contracts with end date before %s",
                len(contracts), today)
    return len(contracts)


def run_scheduled_jobs(today: Optional[date] = None) -> dict:
    with clm_session_scope() as db:
        expired = process_contract_expiry(db, today)

    audit_retried = audit_crud.retry_pending()
    return {"expired": expired, "audit_retried": audit_retried}


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Scheduled jobs finished: %s", run_scheduled_jobs())

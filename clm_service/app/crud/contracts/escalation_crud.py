"""Escalation of a contract's legal review to a Legal Head."""
import logging
from datetime import date, timedelta
from typing import List, Optional, Sequence
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import func
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.schemas import AuthContext
from shared.helpers import access_helper
from shared.helpers.app_errors import NoEligibleApprover
from shared.helpers.json_response_helper import error_response
from shared.models.users import Users
from shared.utils.app_status_code import AppStatusCode
from shared.utils.enums import RoleCode
from ...enum.contract_enum import (
    ApprovalStatus, ApprovalType, AuditAction, AuditModule, ContractAction
)
from ...models.contracts.contract_approvals import ContractApproval
from ...schemas.contracts.contract_approvals_schemas import ApprovalOut, EscalateRequest
from ...schemas.system.audit_logs_schemas import AuditEntry
from ..system import audit_crud
from . import contract_approvals_crud as ledger
from .contract_workflow import (
    get_contract_for_update, transition, validate_transition, workflow_unit
)

logger = logging.getLogger(__name__)


def select_legal_head(db: Session, candidates: Sequence[Users]) -> Users:
    """Least-recently-assigned Legal Head; never-assigned first, ties by user id."""
    ids = [user.id for user in candidates]
    rows = (
        db.query(ContractApproval.actor_id, func.max(ContractApproval.created_at))
        .filter(
            ContractApproval.actor_id.in_(ids),
            ContractApproval.type == ApprovalType.LEGAL,
        )
        .group_by(ContractApproval.actor_id)
        .all()
    )
    last_assigned = {actor_id: assigned_at for actor_id, assigned_at in rows}

    def sort_key(user: Users):
        assigned_at = last_assigned.get(user.id)
        if assigned_at is None:
            return (0, "", str(user.id))
        return (1, assigned_at, str(user.id))

    return sorted(candidates, key=sort_key)[0]


def get_eligible_heads(auth_db: Session, org_id: UUID) -> List[Users]:
    heads = access_helper.find_users_with_role(
        auth_db, org_id, RoleCode.LEGAL_HEAD)
    if not heads:
        raise NoEligibleApprover(
            "No user holds the LEGAL_HEAD role in this organization")
    return heads


def escalate_to_head(
    db: Session,
    auth_db: Session,
    contract_id: UUID,
    ctx: AuthContext,
    data: EscalateRequest,
    background_tasks: Optional[BackgroundTasks] = None,
) -> ApprovalOut:
    reason = (data.reason or "").strip()
    if not reason:
        return error_response(
            message="Escalation reason is required",
            status_code=AppStatusCode.REQUIRED_VALIDATION_ERROR,
            http_status=400
        )

    contract = get_contract_for_update(db, contract_id, ctx.org_id)
    current = ledger.find_pending(db, contract.id, ApprovalType.LEGAL)

    # permission + edge + pending checks before looking for an assignee
    validate_transition(contract, ContractAction.ESCALATE, ctx, approval=current)

    head = select_legal_head(db, get_eligible_heads(auth_db, contract.org_id))
    old_status = contract.status
    due_date = data.due_date or (
        date.today() + timedelta(days=settings.ESCALATION_DUE_DAYS))

    with workflow_unit(db):
        transition(contract, ContractAction.ESCALATE, ctx, approval=current)

        if current:
            current.status = ApprovalStatus.ESCALATED
            current.acted_at = ledger.utcnow()
            db.flush()

        approval = ledger.create_approval(
            db, auth_db, contract, ApprovalType.LEGAL,
            actor_id=head.id,
            due_date=due_date,
            requested_by=ctx.user_id,
            metadata={
                "reason": reason,
                "notes": data.notes,
                "escalated_by": str(ctx.user_id),
                "escalated_from": str(current.id) if current else None,
            },
        )

    logger.info("Contract %s escalated to legal head %s by %s",
                contract.reference, head.id, ctx.user_id)

    audit_crud.schedule(background_tasks, AuditEntry(
        org_id=contract.org_id,
        contract_id=contract.id,
        user_id=ctx.user_id,
        action=AuditAction.CONTRACT_ESCALATED_TO_LEGAL_HEAD,
        module=AuditModule.APPROVALS,
        target_type="Contract",
        target_id=str(contract.id),
        old_value={"status": old_status,
                   "approval_id": current.id if current else None},
        new_value={"status": contract.status, "approval_id": approval.id,
                   "assigned_to": head.id},
        metadata={"reason": reason, "notes": data.notes},
    ))

    return ApprovalOut.model_validate(approval)

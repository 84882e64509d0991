import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from shared.core.schemas import AuthContext
from shared.helpers import access_helper
from shared.helpers.app_errors import (
    ApprovalNotFound, ContractNotFound, DuplicatePending, NotPending, Unauthorized
)
from shared.helpers.json_response_helper import error_response
from shared.utils.app_status_code import AppStatusCode
from shared.utils.enums import PermissionCode, RoleCode
from ...enum.contract_enum import (
    ApprovalStatus, ApprovalType, AuditAction, AuditModule, ContractAction, ContractStatus
)
from ...models.contracts.contracts import Contract
from ...models.contracts.contract_approvals import ContractApproval
from ...schemas.contracts.contract_approvals_schemas import (
    ApprovalOut, FinanceReviewRequest, PendingApprovalOut
)
from ...schemas.system.audit_logs_schemas import AuditEntry
from ..system import audit_crud
from .contract_workflow import get_contract_for_update, transition, workflow_unit

logger = logging.getLogger(__name__)

approver_roles = {
    ApprovalType.LEGAL: (RoleCode.LEGAL_MANAGER, RoleCode.LEGAL_HEAD),
    ApprovalType.FINANCE: (RoleCode.FINANCE_MANAGER,),
}

act_permissions = {
    ApprovalType.LEGAL: PermissionCode.APPROVAL_LEGAL_ACT,
    ApprovalType.FINANCE: PermissionCode.APPROVAL_FINANCE_ACT,
}

view_permissions = {
    ApprovalType.LEGAL: PermissionCode.APPROVAL_LEGAL_VIEW,
    ApprovalType.FINANCE: PermissionCode.APPROVAL_FINANCE_VIEW,
}

approve_actions = {
    ApprovalType.LEGAL: ContractAction.APPROVE_LEGAL,
    ApprovalType.FINANCE: ContractAction.APPROVE_FINANCE,
}

reject_actions = {
    ApprovalType.LEGAL: ContractAction.REJECT_LEGAL,
    ApprovalType.FINANCE: ContractAction.REJECT_FINANCE,
}


def utcnow():
    return datetime.now(timezone.utc)


def is_authorized_approver(auth_db: Session, user_id: UUID, org_id: UUID,
                           approval_type: ApprovalType) -> bool:
    return any(
        access_helper.has_role(auth_db, user_id, org_id, role)
        for role in approver_roles[ApprovalType(approval_type)]
    )


# ----------------------------------------------------------------------
# Ledger
# ----------------------------------------------------------------------

def find_pending(db: Session, contract_id: UUID,
                 approval_type: Optional[ApprovalType] = None) -> Optional[ContractApproval]:
    query = db.query(ContractApproval).filter(
        ContractApproval.contract_id == contract_id,
        ContractApproval.status == ApprovalStatus.PENDING,
    )
    if approval_type:
        query = query.filter(ContractApproval.type == approval_type)
    return query.order_by(ContractApproval.created_at).first()


def create_approval(
    db: Session,
    auth_db: Session,
    contract: Contract,
    approval_type: ApprovalType,
    actor_id: Optional[UUID] = None,
    due_date: Optional[date] = None,
    requested_by: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> ContractApproval:
    """Add a PENDING approval to the session. The caller commits."""
    approval_type = ApprovalType(approval_type)

    if find_pending(db, contract.id, approval_type):
        raise DuplicatePending(
            f"A pending {approval_type.value} approval already exists for {contract.reference}")

    if actor_id and not is_authorized_approver(auth_db, actor_id, contract.org_id, approval_type):
        raise Unauthorized(
            f"Assigned user cannot act on {approval_type.value} approvals")

    approval = ContractApproval(
        contract_id=contract.id,
        type=approval_type,
        status=ApprovalStatus.PENDING,
        actor_id=actor_id,
        requested_by=requested_by,
        due_date=due_date,
        approval_metadata=metadata,
        created_at=utcnow(),
    )
    db.add(approval)
    db.flush()
    return approval


def get_approval(db: Session, approval_id: UUID, ctx: AuthContext) -> ContractApproval:
    approval = (
        db.query(ContractApproval)
        .join(Contract, Contract.id == ContractApproval.contract_id)
        .filter(
            ContractApproval.id == approval_id,
            Contract.org_id == ctx.org_id,
            Contract.is_deleted == False,
        )
        .first()
    )
    if not approval:
        raise ApprovalNotFound()
    return approval


def ensure_act_permission(approval: ContractApproval, ctx: AuthContext):
    permission = act_permissions[ApprovalType(approval.type)]
    if not ctx.can(permission):
        raise Unauthorized(f"Missing required permission: {permission.value}")


def ensure_can_act(approval: ContractApproval, ctx: AuthContext):
    approval_type = ApprovalType(approval.type)
    ensure_act_permission(approval, ctx)

    if approval.actor_id:
        if approval.actor_id != ctx.user_id:
            raise Unauthorized("Approval is assigned to another user")
    elif not ctx.has_role(*approver_roles[approval_type]):
        raise Unauthorized(
            f"Only {' or '.join(r.value for r in approver_roles[approval_type])} can act on this approval")


def resolve(db: Session, approval_id: UUID, outcome: ApprovalStatus,
            comment: Optional[str], ctx: AuthContext) -> ContractApproval:
    """Move a PENDING approval to APPROVED/REJECTED. Does not commit."""
    outcome = ApprovalStatus(outcome)
    if outcome not in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
        raise ValueError(f"Invalid approval outcome {outcome.value}")

    approval = get_approval(db, approval_id, ctx)
    ensure_act_permission(approval, ctx)
    if approval.status != ApprovalStatus.PENDING:
        raise NotPending()

    if outcome == ApprovalStatus.REJECTED and not (comment and comment.strip()):
        return error_response(
            message="Rejection comment is required",
            status_code=AppStatusCode.REQUIRED_VALIDATION_ERROR,
            http_status=400
        )

    ensure_can_act(approval, ctx)

    # only one resolver can win the row
    result = db.execute(
        update(ContractApproval)
        .where(
            ContractApproval.id == approval.id,
            ContractApproval.status == ApprovalStatus.PENDING,
        )
        .values(
            status=outcome,
            actor_id=ctx.user_id,
            comment=comment,
            acted_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotPending()

    db.refresh(approval)
    return approval


def close_pending_approvals(db: Session, contract: Contract,
                            status: ApprovalStatus = ApprovalStatus.CANCELLED,
                            comment: Optional[str] = None) -> int:
    """Close every PENDING approval of a contract leaving review. Does not commit."""
    pending = db.query(ContractApproval).filter(
        ContractApproval.contract_id == contract.id,
        ContractApproval.status == ApprovalStatus.PENDING,
    ).all()
    for approval in pending:
        approval.status = status
        approval.acted_at = utcnow()
        if comment:
            approval.comment = comment
    return len(pending)


# ----------------------------------------------------------------------
# Workflow operations
# ----------------------------------------------------------------------

def _audit(background_tasks, ctx: AuthContext, contract: Contract, action: AuditAction,
           old_status: ContractStatus, approval: Optional[ContractApproval] = None,
           metadata: Optional[Dict[str, Any]] = None):
    audit_crud.schedule(background_tasks, AuditEntry(
        org_id=contract.org_id,
        contract_id=contract.id,
        user_id=ctx.user_id,
        action=action,
        module=AuditModule.APPROVALS,
        target_type="ContractApproval" if approval else "Contract",
        target_id=str(approval.id if approval else contract.id),
        old_value={"status": old_status},
        new_value={"status": contract.status,
                   "approval_status": approval.status if approval else None},
        metadata=metadata,
    ))


def _resolve_with_transition(db: Session, approval_id: UUID, ctx: AuthContext,
                             outcome: ApprovalStatus, comment: Optional[str]):
    approval = get_approval(db, approval_id, ctx)
    ensure_act_permission(approval, ctx)
    if approval.status != ApprovalStatus.PENDING:
        raise NotPending()

    contract = get_contract_for_update(db, approval.contract_id, ctx.org_id)
    old_status = contract.status
    approval_type = ApprovalType(approval.type)
    action = (approve_actions if outcome == ApprovalStatus.APPROVED
              else reject_actions)[approval_type]

    with workflow_unit(db):
        transition(contract, action, ctx, approval=approval)
        resolve(db, approval.id, outcome, comment, ctx)
        if contract.status == ContractStatus.REJECTED:
            close_pending_approvals(db, contract, comment="Contract rejected")

    return contract, approval, old_status


def approve_approval(db: Session, approval_id: UUID, ctx: AuthContext,
                     comment: Optional[str] = None,
                     background_tasks: Optional[BackgroundTasks] = None) -> ApprovalOut:
    contract, approval, old_status = _resolve_with_transition(
        db, approval_id, ctx, ApprovalStatus.APPROVED, comment)

    logger.info("Approval %s approved by %s", approval.id, ctx.user_id)
    _audit(background_tasks, ctx, contract, AuditAction.CONTRACT_APPROVED,
           old_status, approval, {"comment": comment, "type": approval.type})
    return ApprovalOut.model_validate(approval)


def reject_approval(db: Session, approval_id: UUID, ctx: AuthContext,
                    comment: Optional[str],
                    background_tasks: Optional[BackgroundTasks] = None) -> ApprovalOut:
    if not (comment and comment.strip()):
        return error_response(
            message="Rejection comment is required",
            status_code=AppStatusCode.REQUIRED_VALIDATION_ERROR,
            http_status=400
        )

    contract, approval, old_status = _resolve_with_transition(
        db, approval_id, ctx, ApprovalStatus.REJECTED, comment)

    logger.info("Approval %s rejected by %s", approval.id, ctx.user_id)
    _audit(background_tasks, ctx, contract, AuditAction.CONTRACT_REJECTED,
           old_status, approval, {"comment": comment, "type": approval.type})
    return ApprovalOut.model_validate(approval)


def request_finance_review(db: Session, auth_db: Session, contract_id: UUID,
                           ctx: AuthContext, data: FinanceReviewRequest,
                           background_tasks: Optional[BackgroundTasks] = None) -> ApprovalOut:
    contract = get_contract_for_update(db, contract_id, ctx.org_id)
    old_status = contract.status

    with workflow_unit(db):
        transition(contract, ContractAction.REQUEST_FINANCE, ctx)
        approval = create_approval(
            db, auth_db, contract, ApprovalType.FINANCE,
            actor_id=data.finance_approver_id,
            due_date=data.due_date,
            requested_by=ctx.user_id,
        )

    _audit(background_tasks, ctx, contract, AuditAction.CONTRACT_FINANCE_REQUESTED,
           old_status, approval)
    return ApprovalOut.model_validate(approval)


# ----------------------------------------------------------------------
# Queries
# ----------------------------------------------------------------------

def get_pending_approvals(db: Session, ctx: AuthContext,
                          approval_type: Optional[ApprovalType] = None) -> List[PendingApprovalOut]:
    visible_types = [
        t for t in ApprovalType
        if ctx.can(view_permissions[t], act_permissions[t])
    ]
    if approval_type:
        visible_types = [t for t in visible_types if t == approval_type]
    if not visible_types:
        return []

    rows = (
        db.query(ContractApproval, Contract)
        .join(Contract, Contract.id == ContractApproval.contract_id)
        .filter(
            Contract.org_id == ctx.org_id,
            Contract.is_deleted == False,
            ContractApproval.status == ApprovalStatus.PENDING,
            ContractApproval.type.in_(visible_types),
            or_(
                ContractApproval.actor_id == ctx.user_id,
                ContractApproval.actor_id.is_(None),
            ),
        )
        .order_by(ContractApproval.created_at)
        .all()
    )

    return [
        PendingApprovalOut(
            **ApprovalOut.model_validate(approval).model_dump(),
            contract_reference=contract.reference,
            contract_title=contract.title,
            contract_status=contract.status,
        )
        for approval, contract in rows
    ]


def list_contract_approvals(db: Session, contract_id: UUID, ctx: AuthContext) -> List[ApprovalOut]:
    if not ctx.can(PermissionCode.CONTRACT_VIEW):
        raise Unauthorized("Missing required permission: contract:view")

    contract = db.query(Contract).filter(
        Contract.id == contract_id,
        Contract.org_id == ctx.org_id,
        Contract.is_deleted == False,
    ).first()
    if not contract:
        raise ContractNotFound()

    return [ApprovalOut.model_validate(a) for a in contract.approvals]

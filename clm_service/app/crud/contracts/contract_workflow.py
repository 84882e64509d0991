"""Contract status state machine.

`status_transitions` is the complete edge table: an action not listed for a
status is illegal from that status. Callers mutate the contract through
`transition()` and persist inside `workflow_unit()` so the status change and
any approval rows written alongside it land in one commit.
"""
import logging
from contextlib import contextmanager
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from shared.core.schemas import AuthContext
from shared.helpers.app_errors import (
    ApprovalNotFound, ContractNotFound, DuplicatePending, InvalidTransition,
    NotPending, StaleState, Unauthorized
)
from shared.utils.enums import PermissionCode
from ...enum.contract_enum import ApprovalStatus, ApprovalType, ContractAction, ContractStatus
from ...models.contracts.contracts import Contract
from ...models.contracts.contract_approvals import ContractApproval

logger = logging.getLogger(__name__)

S = ContractStatus
A = ContractAction


TERMINAL_STATUSES = frozenset({
    S.ACTIVE, S.EXPIRED, S.TERMINATED, S.REJECTED, S.CANCELLED,
})

status_transitions: Dict[ContractStatus, Dict[ContractAction, ContractStatus]] = {
    S.DRAFT: {
        A.SUBMIT: S.SENT_TO_LEGAL,
        A.UPLOAD_FINAL: S.ACTIVE,
        A.CANCEL: S.CANCELLED,
    },
    S.SENT_TO_LEGAL: {
        A.ESCALATE: S.PENDING_LEGAL_HEAD,
        A.APPROVE_LEGAL: S.LEGAL_APPROVED,
        A.REJECT_LEGAL: S.REJECTED,
        A.UPLOAD_FINAL: S.ACTIVE,
        A.CANCEL: S.CANCELLED,
    },
    S.PENDING_LEGAL_HEAD: {
        A.APPROVE_LEGAL: S.APPROVED_LEGAL_HEAD,
        A.REJECT_LEGAL: S.REJECTED,
        A.UPLOAD_FINAL: S.ACTIVE,
        A.CANCEL: S.CANCELLED,
    },
    S.LEGAL_APPROVED: {
        A.REQUEST_FINANCE: S.SENT_TO_FINANCE,
        A.FINALIZE: S.APPROVED,
        A.UPLOAD_FINAL: S.ACTIVE,
        A.CANCEL: S.CANCELLED,
    },
    S.APPROVED_LEGAL_HEAD: {
        A.REQUEST_FINANCE: S.SENT_TO_FINANCE,
        A.FINALIZE: S.APPROVED,
        A.UPLOAD_FINAL: S.ACTIVE,
        A.CANCEL: S.CANCELLED,
    },
    S.SENT_TO_FINANCE: {
        A.APPROVE_FINANCE: S.FINANCE_REVIEWED,
        A.REJECT_FINANCE: S.REJECTED,
        A.UPLOAD_FINAL: S.ACTIVE,
        A.CANCEL: S.CANCELLED,
    },
    S.FINANCE_REVIEWED: {
        A.FINALIZE: S.APPROVED,
        A.UPLOAD_FINAL: S.ACTIVE,
        A.CANCEL: S.CANCELLED,
    },
    S.APPROVED: {
        A.SEND: S.SENT_TO_COUNTERPARTY,
        A.UPLOAD_FINAL: S.ACTIVE,
        A.CANCEL: S.CANCELLED,
    },
    S.SENT_TO_COUNTERPARTY: {
        A.COUNTERSIGN: S.COUNTERSIGNED,
        A.UPLOAD_FINAL: S.ACTIVE,
        A.CANCEL: S.CANCELLED,
    },
    S.COUNTERSIGNED: {
        A.ACTIVATE: S.ACTIVE,
        A.UPLOAD_FINAL: S.ACTIVE,
        A.CANCEL: S.CANCELLED,
    },
    # lifecycle triggers only
    S.ACTIVE: {
        A.TERMINATE: S.TERMINATED,
        A.EXPIRE: S.EXPIRED,
    },
    S.EXPIRED: {},
    S.TERMINATED: {},
    S.REJECTED: {},
    S.CANCELLED: {},
}

# any-of
action_permissions = {
    A.SUBMIT: (PermissionCode.CONTRACT_SUBMIT,),
    A.ESCALATE: (PermissionCode.APPROVAL_LEGAL_ACT, PermissionCode.CONTRACT_ESCALATE),
    A.APPROVE_LEGAL: (PermissionCode.APPROVAL_LEGAL_ACT,),
    A.REJECT_LEGAL: (PermissionCode.APPROVAL_LEGAL_ACT,),
    A.REQUEST_FINANCE: (PermissionCode.APPROVAL_FINANCE_REQUEST,),
    A.APPROVE_FINANCE: (PermissionCode.APPROVAL_FINANCE_ACT,),
    A.REJECT_FINANCE: (PermissionCode.APPROVAL_FINANCE_ACT,),
    A.FINALIZE: (PermissionCode.APPROVAL_LEGAL_ACT,),
    A.SEND: (PermissionCode.CONTRACT_SEND,),
    A.COUNTERSIGN: (PermissionCode.CONTRACT_UPLOAD,),
    A.ACTIVATE: (PermissionCode.CONTRACT_UPLOAD,),
    A.UPLOAD_FINAL: (PermissionCode.CONTRACT_UPLOAD,),
    A.CANCEL: (PermissionCode.CONTRACT_EDIT,),
    A.TERMINATE: (PermissionCode.CONTRACT_EDIT,),
    A.EXPIRE: (),
}

# performed by the scheduler, never by a user
SYSTEM_ACTIONS = frozenset({A.EXPIRE})

# actions that resolve (or supersede) an approval of the given type
approval_actions = {
    A.ESCALATE: ApprovalType.LEGAL,
    A.APPROVE_LEGAL: ApprovalType.LEGAL,
    A.REJECT_LEGAL: ApprovalType.LEGAL,
    A.APPROVE_FINANCE: ApprovalType.FINANCE,
    A.REJECT_FINANCE: ApprovalType.FINANCE,
}


def is_terminal(status: ContractStatus) -> bool:
    return ContractStatus(status) in TERMINAL_STATUSES


def get_next_status(current_status: ContractStatus, action: ContractAction) -> Optional[ContractStatus]:
    return status_transitions.get(ContractStatus(current_status), {}).get(ContractAction(action))


def ensure_permission(ctx: Optional[AuthContext], org_id: UUID, action: ContractAction):
    if action in SYSTEM_ACTIONS:
        if ctx is not None:
            raise Unauthorized(f"'{action.value}' is performed by the system only")
        return

    required = action_permissions[action]
    if ctx is None or ctx.org_id != org_id or not ctx.can(*required):
        raise Unauthorized(
            "Missing required permission: " + " or ".join(p.value for p in required))


def validate_transition(contract: Contract, action: ContractAction, ctx: Optional[AuthContext],
                        approval: Optional[ContractApproval] = None) -> ContractStatus:
    """Run every check for `action` and return the target status. Does not mutate."""
    action = ContractAction(action)
    ensure_permission(ctx, contract.org_id, action)

    next_status = get_next_status(contract.status, action)
    if next_status is None:
        raise InvalidTransition(
            f"Cannot {action.value} a contract in status {ContractStatus(contract.status).value}")

    approval_type = approval_actions.get(action)
    if approval_type is not None:
        if approval is None:
            # a legal review can be escalated before anyone was assigned to it
            if action != A.ESCALATE:
                raise ApprovalNotFound()
        else:
            if approval.contract_id != contract.id or approval.type != approval_type:
                raise ApprovalNotFound()
            if approval.status != ApprovalStatus.PENDING:
                raise NotPending()

    return next_status


def transition(contract: Contract, action: ContractAction, ctx: Optional[AuthContext],
               approval: Optional[ContractApproval] = None) -> Contract:
    next_status = validate_transition(contract, action, ctx, approval)
    old_status = contract.status
    contract.status = next_status
    logger.info(
        "Contract %s: %s -> %s (%s by %s)",
        contract.reference, ContractStatus(old_status).value, next_status.value,
        ContractAction(action).value, ctx.user_id if ctx else "system")
    return contract


def get_available_actions(contract: Contract, ctx: AuthContext) -> List[ContractAction]:
    actions = []
    for action in status_transitions.get(ContractStatus(contract.status), {}):
        if action in SYSTEM_ACTIONS:
            continue
        if ctx.org_id == contract.org_id and ctx.can(*action_permissions[action]):
            actions.append(action)
    return actions


def get_contract_for_update(db: Session, contract_id: UUID, org_id: UUID) -> Contract:
    contract = (
        db.query(Contract)
        .filter(
            Contract.id == contract_id,
            Contract.org_id == org_id,
            Contract.is_deleted == False,
        )
        .with_for_update()
        .first()
    )
    if not contract:
        raise ContractNotFound()
    return contract


def _is_duplicate_pending(error: IntegrityError) -> bool:
    message = str(error.orig)
    return ("uq_contract_approvals_one_pending" in message
            or "UNIQUE constraint failed: contract_approvals" in message)


@contextmanager
def workflow_unit(db: Session):
    """Commit everything done inside the block once, or nothing at all."""
    try:
        yield db
        db.commit()
    except StaleDataError:
        db.rollback()
        raise StaleState()
    except IntegrityError as e:
        db.rollback()
        if _is_duplicate_pending(e):
            raise DuplicatePending()
        raise
    except Exception:
        db.rollback()
        raise

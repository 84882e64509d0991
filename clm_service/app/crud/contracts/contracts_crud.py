import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import or_
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.schemas import AuthContext
from shared.helpers.app_errors import ContractNotFound, InvalidTransition, Unauthorized
from shared.helpers.json_response_helper import error_response
from shared.models.orgs import Orgs
from shared.utils.app_status_code import AppStatusCode
from shared.utils.enums import PermissionCode
from ...enum.contract_enum import (
    ApprovalStatus, ApprovalType, AuditAction, AuditModule, ContractAction, ContractStatus
)
from ...models.contracts.contracts import Contract
from ...schemas.contracts.contracts_schemas import (
    ContractCreate, ContractDetailOut, ContractListResponse, ContractOut, ContractReasonRequest,
    ContractRequest, ContractUpdate, NextActionsOut, SendContractRequest, SubmitContractRequest,
    UploadDocumentRequest
)
from ...schemas.system.audit_logs_schemas import AuditEntry
from ..system import audit_crud
from . import contract_approvals_crud as ledger
from .contract_workflow import (
    get_available_actions, get_contract_for_update, transition, validate_transition,
    workflow_unit
)

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
REFERENCE_ATTEMPTS = 5


def _require(ctx: AuthContext, *codes: PermissionCode):
    if not ctx.can(*codes):
        raise Unauthorized(
            "Missing required permission: " + " or ".join(c.value for c in codes))


def _audit(background_tasks, ctx: Optional[AuthContext], contract: Contract, action: AuditAction,
           old_value: Optional[Dict[str, Any]] = None, new_value: Optional[Dict[str, Any]] = None,
           metadata: Optional[Dict[str, Any]] = None):
    audit_crud.schedule(background_tasks, AuditEntry(
        org_id=contract.org_id,
        contract_id=contract.id,
        user_id=ctx.user_id if ctx else None,
        action=action,
        module=AuditModule.CONTRACTS,
        target_type="Contract",
        target_id=str(contract.id),
        old_value=old_value,
        new_value=new_value if new_value is not None else {"status": contract.status},
        metadata=metadata,
    ))


def generate_reference(db: Session, org_code: Optional[str]) -> str:
    prefix = (org_code or settings.DEFAULT_ORG_CODE).upper()
    period = datetime.now(timezone.utc).strftime("%y%m")

    for _ in range(REFERENCE_ATTEMPTS):
        suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(6))
        reference = f"{prefix}-{period}-{suffix}"
        taken = db.query(Contract.id).filter(
            Contract.reference == reference).first()
        if not taken:
            return reference

    raise RuntimeError("Could not allocate a unique contract reference")


def get_contract(db: Session, contract_id: UUID, ctx: AuthContext) -> ContractDetailOut:
    _require(ctx, PermissionCode.CONTRACT_VIEW)

    contract = db.query(Contract).filter(
        Contract.id == contract_id,
        Contract.org_id == ctx.org_id,
        Contract.is_deleted == False,
    ).first()
    if not contract:
        raise ContractNotFound()

    return ContractDetailOut.model_validate(contract)


def get_contracts(db: Session, ctx: AuthContext, params: ContractRequest) -> ContractListResponse:
    _require(ctx, PermissionCode.CONTRACT_VIEW)

    query = db.query(Contract).filter(
        Contract.org_id == ctx.org_id,
        Contract.is_deleted == False,
    )

    if params.status:
        query = query.filter(Contract.status == params.status)

    if params.search:
        search_term = f"%{params.search}%"
        query = query.filter(or_(
            Contract.title.ilike(search_term),
            Contract.reference.ilike(search_term),
            Contract.counterparty_name.ilike(search_term),
        ))

    total = query.count()
    contracts = (
        query.order_by(Contract.updated_at.desc(), Contract.created_at.desc())
        .offset(params.skip or 0)
        .limit(params.limit or 50)
        .all()
    )

    return ContractListResponse(
        contracts=[ContractOut.model_validate(c) for c in contracts],
        total=total
    )


def create_contract(db: Session, auth_db: Session, ctx: AuthContext, data: ContractCreate,
                    background_tasks: Optional[BackgroundTasks] = None) -> ContractOut:
    _require(ctx, PermissionCode.CONTRACT_CREATE)

    org_code = auth_db.query(Orgs.code).filter(Orgs.id == ctx.org_id).scalar()

    contract = Contract(
        **data.model_dump(),
        org_id=ctx.org_id,
        created_by=ctx.user_id,
        reference=generate_reference(db, org_code),
        status=ContractStatus.DRAFT,
    )

    with workflow_unit(db):
        db.add(contract)
    db.refresh(contract)

    logger.info("Contract %s created by %s", contract.reference, ctx.user_id)
    _audit(background_tasks, ctx, contract, AuditAction.CONTRACT_CREATED,
           new_value={"status": contract.status, "title": contract.title,
                      "reference": contract.reference})
    return ContractOut.model_validate(contract)


def update_contract(db: Session, contract_id: UUID, ctx: AuthContext, data: ContractUpdate,
                    background_tasks: Optional[BackgroundTasks] = None) -> ContractOut:
    _require(ctx, PermissionCode.CONTRACT_EDIT)

    contract = get_contract_for_update(db, contract_id, ctx.org_id)
    if contract.status != ContractStatus.DRAFT:
        raise InvalidTransition("Only draft contracts can be edited")

    changes = data.model_dump(exclude_unset=True)
    old_value = {key: getattr(contract, key) for key in changes}

    with workflow_unit(db):
        for key, value in changes.items():
            setattr(contract, key, value)
    db.refresh(contract)

    _audit(background_tasks, ctx, contract, AuditAction.CONTRACT_UPDATED,
           old_value=old_value, new_value=changes)
    return ContractOut.model_validate(contract)


def delete_contract(db: Session, contract_id: UUID, ctx: AuthContext,
                    background_tasks: Optional[BackgroundTasks] = None) -> bool:
    _require(ctx, PermissionCode.CONTRACT_DELETE)

    contract = get_contract_for_update(db, contract_id, ctx.org_id)
    if contract.status != ContractStatus.DRAFT:
        raise InvalidTransition("Only draft contracts can be deleted")

    # Soft delete
    with workflow_unit(db):
        contract.is_deleted = True

    logger.info("Contract %s deleted by %s", contract.reference, ctx.user_id)
    _audit(background_tasks, ctx, contract, AuditAction.CONTRACT_DELETED,
           old_value={"is_deleted": False}, new_value={"is_deleted": True})
    return True


def _apply_action(
    db: Session,
    contract_id: UUID,
    ctx: AuthContext,
    action: ContractAction,
    audit_action: AuditAction,
    background_tasks: Optional[BackgroundTasks] = None,
    before: Optional[Callable[[Contract], None]] = None,
    after: Optional[Callable[[Contract], None]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> ContractOut:
    contract = get_contract_for_update(db, contract_id, ctx.org_id)
    old_status = contract.status

    with workflow_unit(db):
        if before:
            before(contract)
        transition(contract, action, ctx)
        if after:
            after(contract)
    db.refresh(contract)

    _audit(background_tasks, ctx, contract, audit_action,
           old_value={"status": old_status}, metadata=metadata)
    return ContractOut.model_validate(contract)


def submit_contract(db: Session, auth_db: Session, contract_id: UUID, ctx: AuthContext,
                    data: SubmitContractRequest,
                    background_tasks: Optional[BackgroundTasks] = None) -> ContractOut:
    def open_legal_review(contract: Contract):
        # stale PENDING rows from an earlier cycle never block a new submission
        ledger.close_pending_approvals(db, contract, comment="Superseded by resubmission")
        db.flush()
        ledger.create_approval(
            db, auth_db, contract, ApprovalType.LEGAL,
            actor_id=data.legal_approver_id,
            due_date=data.due_date,
            requested_by=ctx.user_id,
        )

    return _apply_action(
        db, contract_id, ctx, ContractAction.SUBMIT, AuditAction.CONTRACT_SUBMITTED,
        background_tasks, after=open_legal_review)


def finalize_contract(db: Session, contract_id: UUID, ctx: AuthContext,
                      background_tasks: Optional[BackgroundTasks] = None) -> ContractOut:
    def finance_gate(contract: Contract):
        validate_transition(contract, ContractAction.FINALIZE, ctx)
        if settings.FINANCE_REVIEW_REQUIRED and contract.status != ContractStatus.FINANCE_REVIEWED:
            raise InvalidTransition("Finance review is required before final approval")

    return _apply_action(
        db, contract_id, ctx, ContractAction.FINALIZE, AuditAction.CONTRACT_FINALIZED,
        background_tasks, before=finance_gate)


def send_contract(db: Session, contract_id: UUID, ctx: AuthContext, data: SendContractRequest,
                  background_tasks: Optional[BackgroundTasks] = None) -> ContractOut:
    def set_counterparty(contract: Contract):
        validate_transition(contract, ContractAction.SEND, ctx)
        if data.counterparty_email:
            contract.counterparty_email = data.counterparty_email
        if not contract.counterparty_email:
            return error_response(
                message="Counterparty email is required to send a contract",
                status_code=AppStatusCode.REQUIRED_VALIDATION_ERROR,
                http_status=400
            )

    return _apply_action(
        db, contract_id, ctx, ContractAction.SEND, AuditAction.CONTRACT_SENT,
        background_tasks, before=set_counterparty,
        metadata={"counterparty_email": data.counterparty_email, "message": data.message})


def countersign_contract(db: Session, contract_id: UUID, ctx: AuthContext,
                         background_tasks: Optional[BackgroundTasks] = None) -> ContractOut:
    def mark_signed(contract: Contract):
        contract.signed_at = datetime.now(timezone.utc)

    return _apply_action(
        db, contract_id, ctx, ContractAction.COUNTERSIGN, AuditAction.CONTRACT_COUNTERSIGNED,
        background_tasks, after=mark_signed)


def activate_contract(db: Session, contract_id: UUID, ctx: AuthContext,
                      background_tasks: Optional[BackgroundTasks] = None) -> ContractOut:
    return _apply_action(
        db, contract_id, ctx, ContractAction.ACTIVATE, AuditAction.CONTRACT_ACTIVATED,
        background_tasks)


def upload_document(db: Session, contract_id: UUID, ctx: AuthContext, data: UploadDocumentRequest,
                    background_tasks: Optional[BackgroundTasks] = None) -> ContractOut:
    _require(ctx, PermissionCode.CONTRACT_UPLOAD)

    contract = get_contract_for_update(db, contract_id, ctx.org_id)
    old_status = contract.status
    document = {
        "file_name": data.file_name,
        "storage_key": data.storage_key,
        "is_final": data.is_final,
        "uploaded_by": str(ctx.user_id),
        "uploaded_at": datetime.now(timezone.utc).isoformat(),
    }

    with workflow_unit(db):
        if data.is_final:
            transition(contract, ContractAction.UPLOAD_FINAL, ctx)
            ledger.close_pending_approvals(
                db, contract, comment="Final document uploaded")
            contract.signed_at = contract.signed_at or datetime.now(timezone.utc)

        # reassign so the JSON column is flagged dirty
        field_data = dict(contract.field_data or {})
        field_data["documents"] = list(field_data.get("documents", [])) + [document]
        contract.field_data = field_data
    db.refresh(contract)

    _audit(background_tasks, ctx, contract, AuditAction.CONTRACT_DOCUMENT_UPLOADED,
           old_value={"status": old_status},
           metadata=document)
    return ContractOut.model_validate(contract)


def _required_reason(data: ContractReasonRequest, action: str) -> str:
    reason = (data.reason or "").strip()
    if not reason:
        return error_response(
            message=f"A reason is required to {action} a contract",
            status_code=AppStatusCode.REQUIRED_VALIDATION_ERROR,
            http_status=400
        )
    return reason


def cancel_contract(db: Session, contract_id: UUID, ctx: AuthContext, data: ContractReasonRequest,
                    background_tasks: Optional[BackgroundTasks] = None) -> ContractOut:
    reason = _required_reason(data, "cancel")

    def close_review(contract: Contract):
        contract.cancel_reason = reason
        ledger.close_pending_approvals(
            db, contract, status=ApprovalStatus.CANCELLED, comment=reason)

    return _apply_action(
        db, contract_id, ctx, ContractAction.CANCEL, AuditAction.CONTRACT_CANCELLED,
        background_tasks, after=close_review, metadata={"reason": reason})


def terminate_contract(db: Session, contract_id: UUID, ctx: AuthContext, data: ContractReasonRequest,
                       background_tasks: Optional[BackgroundTasks] = None) -> ContractOut:
    reason = _required_reason(data, "terminate")

    def keep_reason(contract: Contract):
        contract.cancel_reason = reason

    return _apply_action(
        db, contract_id, ctx, ContractAction.TERMINATE, AuditAction.CONTRACT_TERMINATED,
        background_tasks, after=keep_reason, metadata={"reason": reason})


def get_next_actions(db: Session, contract_id: UUID, ctx: AuthContext) -> NextActionsOut:
    _require(ctx, PermissionCode.CONTRACT_VIEW)

    contract = db.query(Contract).filter(
        Contract.id == contract_id,
        Contract.org_id == ctx.org_id,
        Contract.is_deleted == False,
    ).first()
    if not contract:
        raise ContractNotFound()

    return NextActionsOut(
        status=contract.status,
        actions=get_available_actions(contract, ctx)
    )

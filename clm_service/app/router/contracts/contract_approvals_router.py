from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from shared.core.auth import get_auth_context, validate_current_token
from shared.core.database import get_auth_db, get_clm_db as get_db
from shared.core.schemas import AuthContext, JsonOutResult
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ...crud.contracts import contract_approvals_crud as crud
from ...crud.contracts import escalation_crud
from ...schemas.contracts.contract_approvals_schemas import (
    ApprovalOut, ApproveRequest, EscalateRequest, PendingApprovalOut, PendingApprovalRequest,
    RejectRequest
)

router = APIRouter(prefix="/api/approvals",
                   tags=["approvals"], dependencies=[Depends(validate_current_token)])


@router.get("/pending", response_model=JsonOutResult[List[PendingApprovalOut]])
def get_pending_approvals(
    params: PendingApprovalRequest = Depends(),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(crud.get_pending_approvals(db, ctx, params.type))


@router.get("/contracts/{contract_id}", response_model=JsonOutResult[List[ApprovalOut]])
def get_contract_approvals(
    contract_id: UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(crud.list_contract_approvals(db, contract_id, ctx))


@router.post("/contracts/{contract_id}/escalate-to-legal-head",
             response_model=JsonOutResult[ApprovalOut])
def escalate_to_legal_head(
    contract_id: UUID,
    data: EscalateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    auth_db: Session = Depends(get_auth_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        escalation_crud.escalate_to_head(
            db, auth_db, contract_id, ctx, data, background_tasks),
        "Contract escalated to legal head",
        AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.post("/{approval_id}/approve", response_model=JsonOutResult[ApprovalOut])
def approve(
    approval_id: UUID,
    background_tasks: BackgroundTasks,
    data: Optional[ApproveRequest] = None,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.approve_approval(db, approval_id, ctx,
                              data.comment if data else None, background_tasks),
        "Approval recorded",
        AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.post("/{approval_id}/reject", response_model=JsonOutResult[ApprovalOut])
def reject(
    approval_id: UUID,
    data: RejectRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.reject_approval(db, approval_id, ctx, data.comment, background_tasks),
        "Rejection recorded",
        AppStatusCode.OPERATION_SUCCESSFUL
    )

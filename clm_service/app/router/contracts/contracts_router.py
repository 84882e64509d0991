from typing import Optional
from uuid import UUID
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from shared.core.auth import get_auth_context, validate_current_token
from shared.core.database import get_auth_db, get_clm_db as get_db
from shared.core.schemas import AuthContext, JsonOutResult
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ...crud.contracts import contracts_crud as crud
from ...crud.contracts import contract_approvals_crud as approvals_crud
from ...schemas.contracts.contract_approvals_schemas import ApprovalOut, FinanceReviewRequest
from ...schemas.contracts.contracts_schemas import (
    ContractCreate, ContractDetailOut, ContractListResponse, ContractOut, ContractReasonRequest,
    ContractRequest, ContractUpdate, NextActionsOut, SendContractRequest, SubmitContractRequest,
    UploadDocumentRequest
)

router = APIRouter(prefix="/api/contracts",
                   tags=["contracts"], dependencies=[Depends(validate_current_token)])


# ---------------- List / read ----------------

@router.get("/all", response_model=JsonOutResult[ContractListResponse])
def get_contracts(
    params: ContractRequest = Depends(),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(crud.get_contracts(db, ctx, params))


@router.get("/{contract_id}", response_model=JsonOutResult[ContractDetailOut])
def get_contract(
    contract_id: UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(crud.get_contract(db, contract_id, ctx))


@router.get("/{contract_id}/next-actions", response_model=JsonOutResult[NextActionsOut])
def get_next_actions(
    contract_id: UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(crud.get_next_actions(db, contract_id, ctx))


# ---------------- Create / update ----------------

@router.post("/create", response_model=JsonOutResult[ContractOut])
def create_contract(
    contract: ContractCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    auth_db: Session = Depends(get_auth_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.create_contract(db, auth_db, ctx, contract, background_tasks),
        "Contract created successfully",
        AppStatusCode.CREATED_SUCCESSFULLY
    )


@router.put("/{contract_id}", response_model=JsonOutResult[ContractOut])
def update_contract(
    contract_id: UUID,
    contract: ContractUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.update_contract(db, contract_id, ctx, contract, background_tasks),
        "Contract updated successfully",
        AppStatusCode.UPDATED_SUCCESSFULLY
    )


@router.delete("/{contract_id}", response_model=JsonOutResult[bool])
def delete_contract(
    contract_id: UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.delete_contract(db, contract_id, ctx, background_tasks),
        "Contract deleted successfully",
        AppStatusCode.OPERATION_SUCCESSFUL
    )


# ---------------- Workflow ----------------

@router.post("/{contract_id}/submit", response_model=JsonOutResult[ContractOut])
def submit_contract(
    contract_id: UUID,
    background_tasks: BackgroundTasks,
    data: Optional[SubmitContractRequest] = None,
    db: Session = Depends(get_db),
    auth_db: Session = Depends(get_auth_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.submit_contract(db, auth_db, contract_id, ctx,
                             data or SubmitContractRequest(), background_tasks),
        "Contract submitted for legal review",
        AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.post("/{contract_id}/request-finance", response_model=JsonOutResult[ApprovalOut])
def request_finance_review(
    contract_id: UUID,
    background_tasks: BackgroundTasks,
    data: Optional[FinanceReviewRequest] = None,
    db: Session = Depends(get_db),
    auth_db: Session = Depends(get_auth_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        approvals_crud.request_finance_review(
            db, auth_db, contract_id, ctx, data or FinanceReviewRequest(), background_tasks),
        "Finance review requested",
        AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.post("/{contract_id}/finalize", response_model=JsonOutResult[ContractOut])
def finalize_contract(
    contract_id: UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.finalize_contract(db, contract_id, ctx, background_tasks),
        "Contract approved",
        AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.post("/{contract_id}/send", response_model=JsonOutResult[ContractOut])
def send_contract(
    contract_id: UUID,
    background_tasks: BackgroundTasks,
    data: Optional[SendContractRequest] = None,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.send_contract(db, contract_id, ctx, data or SendContractRequest(), background_tasks),
        "Contract sent to counterparty",
        AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.post("/{contract_id}/countersign", response_model=JsonOutResult[ContractOut])
def countersign_contract(
    contract_id: UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.countersign_contract(db, contract_id, ctx, background_tasks),
        "Countersigned copy recorded",
        AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.post("/{contract_id}/activate", response_model=JsonOutResult[ContractOut])
def activate_contract(
    contract_id: UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.activate_contract(db, contract_id, ctx, background_tasks),
        "Contract activated",
        AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.post("/{contract_id}/documents", response_model=JsonOutResult[ContractOut])
def upload_document(
    contract_id: UUID,
    data: UploadDocumentRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.upload_document(db, contract_id, ctx, data, background_tasks),
        "Document uploaded",
        AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.post("/{contract_id}/cancel", response_model=JsonOutResult[ContractOut])
def cancel_contract(
    contract_id: UUID,
    data: ContractReasonRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.cancel_contract(db, contract_id, ctx, data, background_tasks),
        "Contract cancelled",
        AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.post("/{contract_id}/terminate", response_model=JsonOutResult[ContractOut])
def terminate_contract(
    contract_id: UUID,
    data: ContractReasonRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(
        crud.terminate_contract(db, contract_id, ctx, data, background_tasks),
        "Contract terminated",
        AppStatusCode.OPERATION_SUCCESSFUL
    )

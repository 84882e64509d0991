from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.auth import get_auth_context, validate_current_token
from shared.core.database import get_clm_db as get_db
from shared.core.schemas import AuthContext, JsonOutResult
from shared.helpers.json_response_helper import success_response
from ...crud.system import audit_crud as crud
from ...schemas.system.audit_logs_schemas import (
    AuditLogListResponse, AuditLogOut, AuditLogRequest
)

router = APIRouter(prefix="/api/audit",
                   tags=["audit"], dependencies=[Depends(validate_current_token)])


@router.get("/all", response_model=JsonOutResult[AuditLogListResponse])
def get_audit_logs(
    params: AuditLogRequest = Depends(),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(crud.get_org_audit_logs(db, ctx, params))


@router.get("/contracts/{contract_id}", response_model=JsonOutResult[List[AuditLogOut]])
def get_contract_audit_logs(
    contract_id: UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(crud.get_contract_audit_logs(db, contract_id, ctx))

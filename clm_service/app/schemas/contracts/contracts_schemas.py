from uuid import UUID
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from typing import Any, Dict, List, Optional
from datetime import date, datetime

from shared.core.schemas import CommonQueryParams
from shared.wrappers.empty_string_model_wrapper import EmptyStringModel
from ...enum.contract_enum import ContractAction, ContractStatus
from .contract_approvals_schemas import ApprovalOut


# -------------------- Base Schema --------------------
class ContractBase(EmptyStringModel):
    title: str
    template_id: Optional[UUID] = None
    content: Optional[str] = None
    annexure_data: Optional[Any] = None
    field_data: Optional[Dict[str, Any]] = None
    counterparty_name: Optional[str] = None
    counterparty_email: Optional[EmailStr] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    amount: Optional[float] = None


class ContractCreate(ContractBase):
    pass


class ContractUpdate(EmptyStringModel):
    title: Optional[str] = None
    template_id: Optional[UUID] = None
    content: Optional[str] = None
    annexure_data: Optional[Any] = None
    field_data: Optional[Dict[str, Any]] = None
    counterparty_name: Optional[str] = None
    counterparty_email: Optional[EmailStr] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    amount: Optional[float] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value):
        if value is None:
            raise ValueError("title cannot be empty")
        return value


# -------------------- Output Schema --------------------
class ContractOut(BaseModel):
    id: UUID
    org_id: UUID
    reference: str
    title: str
    status: ContractStatus
    template_id: Optional[UUID] = None
    created_by: UUID
    content: Optional[str] = None
    annexure_data: Optional[Any] = None
    field_data: Optional[Dict[str, Any]] = None
    counterparty_name: Optional[str] = None
    counterparty_email: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    amount: Optional[float] = None
    cancel_reason: Optional[str] = None
    signed_at: Optional[datetime] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ContractDetailOut(ContractOut):
    approvals: List[ApprovalOut] = []


class ContractRequest(CommonQueryParams):
    status: Optional[ContractStatus] = None


class ContractListResponse(BaseModel):
    contracts: List[ContractOut]
    total: int


class NextActionsOut(BaseModel):
    status: ContractStatus
    actions: List[ContractAction]


# -------------------- Workflow actions --------------------
class SubmitContractRequest(EmptyStringModel):
    legal_approver_id: Optional[UUID] = None
    due_date: Optional[date] = None


class SendContractRequest(EmptyStringModel):
    counterparty_email: Optional[EmailStr] = None
    message: Optional[str] = None


class UploadDocumentRequest(EmptyStringModel):
    file_name: str
    storage_key: Optional[str] = None
    is_final: bool = False


class ContractReasonRequest(EmptyStringModel):
    reason: Optional[str] = None

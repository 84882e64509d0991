from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional
from datetime import date, datetime

from shared.wrappers.empty_string_model_wrapper import EmptyStringModel
from ...enum.contract_enum import ApprovalStatus, ApprovalType, ContractStatus


class ApprovalOut(BaseModel):
    id: UUID
    contract_id: UUID
    type: ApprovalType
    status: ApprovalStatus
    actor_id: Optional[UUID] = None
    requested_by: Optional[UUID] = None
    due_date: Optional[date] = None
    comment: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias="approval_metadata")
    acted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class PendingApprovalOut(ApprovalOut):
    contract_reference: str
    contract_title: str
    contract_status: ContractStatus


class ApproveRequest(EmptyStringModel):
    comment: Optional[str] = None


class RejectRequest(EmptyStringModel):
    comment: Optional[str] = None


class EscalateRequest(EmptyStringModel):
    reason: Optional[str] = None
    notes: Optional[str] = None
    due_date: Optional[date] = None


class FinanceReviewRequest(EmptyStringModel):
    finance_approver_id: Optional[UUID] = None
    due_date: Optional[date] = None


class PendingApprovalRequest(EmptyStringModel):
    type: Optional[ApprovalType] = None

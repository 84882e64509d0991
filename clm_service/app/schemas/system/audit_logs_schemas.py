from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional
from datetime import datetime

from shared.core.schemas import CommonQueryParams
from ...enum.contract_enum import AuditAction, AuditModule


class AuditEntry(BaseModel):
    """One audit record as handed to the recorder."""
    org_id: Optional[UUID] = None
    contract_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    action: AuditAction
    module: AuditModule
    target_type: str
    target_id: Optional[str] = None
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    metadata: Optional[Any] = None


class AuditLogOut(BaseModel):
    id: UUID
    org_id: Optional[UUID] = None
    contract_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    action: str
    module: str
    target_type: str
    target_id: Optional[str] = None
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    metadata: Optional[Any] = Field(default=None, validation_alias="audit_metadata")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class AuditLogRequest(CommonQueryParams):
    module: Optional[AuditModule] = None
    action: Optional[AuditAction] = None
    user_id: Optional[UUID] = None
    contract_id: Optional[UUID] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogOut]
    total: int

from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from uuid import UUID

from shared.utils.enums import PermissionCode, RoleCode


class AccessOut(BaseModel):
    user_id: UUID
    org_id: UUID
    name: Optional[str] = None
    roles: List[RoleCode] = []
    permissions: List[PermissionCode] = []


class RoleUserOut(BaseModel):
    id: UUID
    full_name: str
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

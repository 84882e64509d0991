from pydantic import BaseModel, ConfigDict
from typing import FrozenSet, Generic, Optional, TypeVar, Union
from uuid import UUID

from shared.utils.enums import PermissionCode, RoleCode
from shared.wrappers.empty_string_model_wrapper import EmptyStringModel

# Shared properties
T = TypeVar("T")


class UserToken(BaseModel):
    user_id: UUID
    org_id: Optional[UUID] = None
    name: Optional[str] = None
    status: Optional[str] = None
    exp: Optional[int] = None


class AuthContext(BaseModel):
    """Caller identity resolved once per request and passed to every workflow operation."""
    model_config = ConfigDict(frozen=True)

    user_id: UUID
    org_id: UUID
    name: Optional[str] = None
    permissions: FrozenSet[PermissionCode] = frozenset()
    roles: FrozenSet[RoleCode] = frozenset()

    def can(self, *codes: PermissionCode) -> bool:
        # any-of
        return any(code in self.permissions for code in codes)

    def has_role(self, *codes: RoleCode) -> bool:
        return any(code in self.roles for code in codes)


class CommonQueryParams(EmptyStringModel):
    search: Optional[str] = None
    skip: Optional[int] = 0
    limit: Optional[int] = None


class Lookup(BaseModel):
    id: Union[str, UUID]  # accepts both UUID and str
    name: str

    model_config = ConfigDict(from_attributes=True)


class JsonOutResult(BaseModel, Generic[T]):
    data: Optional[T] = None
    status: str
    status_code: str
    message: str

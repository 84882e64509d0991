from enum import Enum


class RoleCode(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ENTITY_ADMIN = "ENTITY_ADMIN"
    LEGAL_HEAD = "LEGAL_HEAD"
    LEGAL_MANAGER = "LEGAL_MANAGER"
    FINANCE_MANAGER = "FINANCE_MANAGER"
    BUSINESS_USER = "BUSINESS_USER"


class PermissionCode(str, Enum):
    CONTRACT_VIEW = "contract:view"
    CONTRACT_CREATE = "contract:create"
    CONTRACT_EDIT = "contract:edit"
    CONTRACT_DELETE = "contract:delete"
    CONTRACT_SUBMIT = "contract:submit"
    CONTRACT_SEND = "contract:send"
    CONTRACT_UPLOAD = "contract:upload"
    CONTRACT_DOWNLOAD = "contract:download"
    CONTRACT_HISTORY = "contract:history"
    CONTRACT_ESCALATE = "contract:escalate"
    APPROVAL_LEGAL_VIEW = "approval:legal:view"
    APPROVAL_LEGAL_ACT = "approval:legal:act"
    APPROVAL_FINANCE_VIEW = "approval:finance:view"
    APPROVAL_FINANCE_ACT = "approval:finance:act"
    APPROVAL_FINANCE_REQUEST = "approval:finance:request"
    SYSTEM_AUDIT = "system:audit"

    @property
    def resource(self) -> str:
        return self.value.rsplit(":", 1)[0]

    @property
    def action(self) -> str:
        return self.value.rsplit(":", 1)[1]

    @classmethod
    def from_policy(cls, resource: str, action: str):
        """Map a stored (resource, action) policy row to a code, None if unknown."""
        try:
            return cls(f"{resource}:{action}")
        except ValueError:
            return None


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

from typing import List

from fastapi import status
from sqlalchemy.orm import Session

from shared.core.schemas import AuthContext
from shared.helpers import access_helper
from shared.helpers.json_response_helper import error_response
from shared.utils.app_status_code import AppStatusCode
from shared.utils.enums import PermissionCode, RoleCode
from ..schemas.accessschema import AccessOut, RoleUserOut


def get_my_access(ctx: AuthContext) -> AccessOut:
    return AccessOut(
        user_id=ctx.user_id,
        org_id=ctx.org_id,
        name=ctx.name,
        roles=sorted(ctx.roles, key=lambda r: r.value),
        permissions=sorted(ctx.permissions, key=lambda p: p.value),
    )


def get_role_users(db: Session, ctx: AuthContext, role_code: str) -> List[RoleUserOut]:
    if not (ctx.can(PermissionCode.SYSTEM_AUDIT)
            or ctx.has_role(RoleCode.ENTITY_ADMIN, RoleCode.SUPER_ADMIN)):
        return error_response(
            message="You are not allowed to list role members",
            status_code=AppStatusCode.UNAUTHORIZED_ACTION,
            http_status=status.HTTP_403_FORBIDDEN
        )

    try:
        code = RoleCode(role_code.upper())
    except ValueError:
        return error_response(
            message=f"Unknown role '{role_code}'",
            status_code=AppStatusCode.INVALID_INPUT,
            http_status=status.HTTP_400_BAD_REQUEST
        )

    users = access_helper.find_users_with_role(db, ctx.org_id, code)
    return [RoleUserOut.model_validate(user) for user in users]

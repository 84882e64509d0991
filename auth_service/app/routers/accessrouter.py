from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.auth import get_auth_context, validate_current_token
from shared.core.database import get_auth_db
from shared.core.schemas import AuthContext, JsonOutResult
from shared.helpers.json_response_helper import success_response
from ..schemas.accessschema import AccessOut, RoleUserOut
from ..services import accessservices

router = APIRouter(prefix="/api/access",
                   tags=["access"], dependencies=[Depends(validate_current_token)])


@router.get("/me", response_model=JsonOutResult[AccessOut])
def get_my_access(ctx: AuthContext = Depends(get_auth_context)):
    return success_response(accessservices.get_my_access(ctx))


@router.get("/roles/{role_code}/users", response_model=JsonOutResult[List[RoleUserOut]])
def get_role_users(
    role_code: str,
    db: Session = Depends(get_auth_db),
    ctx: AuthContext = Depends(get_auth_context)
):
    return success_response(accessservices.get_role_users(db, ctx, role_code))

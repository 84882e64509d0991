from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlalchemy.orm import Session

from shared.models.users import Users
from shared.utils.app_status_code import AppStatusCode
from shared.utils.enums import UserStatus
from shared.core.config import settings
from shared.helpers.json_response_helper import error_response
from shared.helpers.access_helper import build_auth_context
from shared.core.schemas import AuthContext, UserToken
from shared.core.database import get_auth_db as get_db

security = HTTPBearer()


def create_access_token(data: dict, expires_minutes: Optional[int] = None):
    """Token issuing lives in the identity provider; used by tooling and tests."""
    payload = {k: str(v) if v is not None and k in ("user_id", "org_id") else v
               for k, v in data.items()}

    if expires_minutes:
        payload["exp"] = datetime.now(timezone.utc) + \
            timedelta(minutes=expires_minutes)

    return jwt.encode(payload, settings.JWT_SECRET,
                      algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> UserToken:
    """Verify and decode a JWT token."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET,
                             algorithms=[settings.JWT_ALGORITHM])
        return UserToken(**payload)
    except JWTError:
        return error_response(
            message="Invalid or expired token",
            status_code=AppStatusCode.AUTHENTICATION_TOKEN_EXPIRED,
            http_status=status.HTTP_401_UNAUTHORIZED
        )
    except ValidationError:
        return error_response(
            message="Invalid token structure",
            status_code=AppStatusCode.AUTHENTICATION_TOKEN_INVALID,
            http_status=status.HTTP_401_UNAUTHORIZED
        )


def validate_current_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> UserToken:
    user_data = verify_token(credentials.credentials)

    user = db.query(Users).filter(
        Users.id == user_data.user_id,
        Users.is_deleted == False
    ).first()

    if not user:
        return error_response(
            message="User not found",
            status_code=AppStatusCode.AUTHENTICATION_USER_INVALID,
            http_status=status.HTTP_401_UNAUTHORIZED
        )

    if user.status.lower() != UserStatus.ACTIVE.value:
        return error_response(
            message="User is not active. Access denied",
            status_code=AppStatusCode.AUTHENTICATION_USER_INACTIVE,
            http_status=status.HTTP_403_FORBIDDEN
        )

    user_data.status = user.status
    user_data.name = user_data.name or user.full_name
    return user_data


def get_auth_context(
    current_user: UserToken = Depends(validate_current_token),
    db: Session = Depends(get_db)
) -> AuthContext:
    if not current_user.org_id:
        return error_response(
            message="Organization context is required",
            status_code=AppStatusCode.AUTHENTICATION_ORG_MISSING,
            http_status=status.HTTP_403_FORBIDDEN
        )

    return build_auth_context(db, current_user.user_id, current_user.org_id,
                              name=current_user.name)

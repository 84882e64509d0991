"""Role / permission lookups against the auth database.

All functions are read-only. A missing user, membership or role yields
False / an empty collection; data store failures propagate as SQLAlchemy
errors so callers can treat them as retryable.
"""
import logging
from typing import List, Optional, Set, Union
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from shared.core.schemas import AuthContext
from shared.models import Roles, RolePolicy, UserOrganization, Users, user_org_roles
from shared.utils.enums import PermissionCode, RoleCode, UserStatus

logger = logging.getLogger(__name__)


def _member_roles_query(db: Session, query, org_id: UUID):
    """Join the given query through active membership -> role for org_id."""
    return (
        query
        .join(UserOrganization, UserOrganization.user_id == Users.id)
        .join(user_org_roles, user_org_roles.c.user_org_id == UserOrganization.id)
        .join(Roles, Roles.id == user_org_roles.c.role_id)
        .filter(
            UserOrganization.org_id == org_id,
            UserOrganization.status == UserStatus.ACTIVE.value,
            UserOrganization.is_deleted == False,
            Users.status == UserStatus.ACTIVE.value,
            Users.is_deleted == False,
            Roles.is_deleted == False,
            or_(Roles.org_id == org_id, Roles.org_id.is_(None)),
        )
    )


def has_permission(db: Session, user_id: UUID, org_id: UUID,
                   permission_code: Union[PermissionCode, str]) -> bool:
    code = PermissionCode(permission_code)
    if not user_id or not org_id:
        return False

    query = _member_roles_query(db, db.query(RolePolicy.id).select_from(Users), org_id) \
        .join(RolePolicy, RolePolicy.role_id == Roles.id) \
        .filter(
            Users.id == user_id,
            RolePolicy.resource == code.resource,
            RolePolicy.action == code.action,
    )
    return db.query(query.exists()).scalar()


def has_role(db: Session, user_id: UUID, org_id: UUID,
             role_code: Union[RoleCode, str]) -> bool:
    code = RoleCode(role_code)
    if not user_id or not org_id:
        return False

    query = _member_roles_query(db, db.query(Roles.id).select_from(Users), org_id) \
        .filter(Users.id == user_id, Roles.code == code.value)
    return db.query(query.exists()).scalar()


def find_users_with_role(db: Session, org_id: UUID,
                         role_code: Union[RoleCode, str]) -> List[Users]:
    code = RoleCode(role_code)
    if not org_id:
        return []

    return (
        _member_roles_query(db, db.query(Users), org_id)
        .filter(Roles.code == code.value)
        .distinct()
        .order_by(Users.id)
        .all()
    )


def get_permissions(db: Session, user_id: UUID, org_id: UUID) -> Set[PermissionCode]:
    rows = (
        _member_roles_query(
            db, db.query(RolePolicy.resource, RolePolicy.action).select_from(Users), org_id)
        .join(RolePolicy, RolePolicy.role_id == Roles.id)
        .filter(Users.id == user_id)
        .distinct()
        .all()
    )

    permissions = set()
    for resource, action in rows:
        code = PermissionCode.from_policy(resource, action)
        if code is None:
            logger.warning("Ignoring unknown permission %s:%s", resource, action)
            continue
        permissions.add(code)
    return permissions


def get_roles(db: Session, user_id: UUID, org_id: UUID) -> Set[RoleCode]:
    rows = (
        _member_roles_query(db, db.query(Roles.code).select_from(Users), org_id)
        .filter(Users.id == user_id)
        .distinct()
        .all()
    )

    roles = set()
    for (code,) in rows:
        try:
            roles.add(RoleCode(code))
        except ValueError:
            logger.warning("Ignoring unknown role code %s", code)
    return roles


def build_auth_context(db: Session, user_id: UUID, org_id: UUID,
                       name: Optional[str] = None) -> AuthContext:
    return AuthContext(
        user_id=user_id,
        org_id=org_id,
        name=name,
        permissions=frozenset(get_permissions(db, user_id, org_id)),
        roles=frozenset(get_roles(db, user_id, org_id)),
    )

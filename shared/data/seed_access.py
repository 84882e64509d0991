"""Idempotent setup of the system roles, their policies and a sample organisation.

Run with: python -m shared.data.seed_access
"""
import logging
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session

from shared.core.database import AuthBase, AuthSessionLocal, auth_engine
from shared.models import Orgs, RolePolicy, Roles, UserOrganization, Users
from shared.utils.enums import PermissionCode as P, RoleCode, UserStatus

logger = logging.getLogger(__name__)


BUSINESS_USER_PERMISSIONS = [
    P.CONTRACT_VIEW, P.CONTRACT_CREATE, P.CONTRACT_EDIT, P.CONTRACT_SUBMIT, P.CONTRACT_HISTORY,
]

LEGAL_MANAGER_PERMISSIONS = [
    P.CONTRACT_VIEW, P.CONTRACT_EDIT, P.CONTRACT_SEND, P.CONTRACT_UPLOAD, P.CONTRACT_HISTORY,
    P.CONTRACT_DOWNLOAD, P.CONTRACT_ESCALATE,
    P.APPROVAL_LEGAL_VIEW, P.APPROVAL_LEGAL_ACT, P.APPROVAL_FINANCE_REQUEST,
    P.SYSTEM_AUDIT,
]

FINANCE_MANAGER_PERMISSIONS = [
    P.CONTRACT_VIEW, P.CONTRACT_HISTORY, P.CONTRACT_DOWNLOAD,
    P.APPROVAL_FINANCE_VIEW, P.APPROVAL_FINANCE_ACT,
    P.SYSTEM_AUDIT,
]

ROLE_DEFINITIONS = {
    RoleCode.BUSINESS_USER: ("Business User", BUSINESS_USER_PERMISSIONS),
    RoleCode.LEGAL_MANAGER: ("Legal Manager", LEGAL_MANAGER_PERMISSIONS),
    RoleCode.LEGAL_HEAD: ("Legal Head", LEGAL_MANAGER_PERMISSIONS),
    RoleCode.FINANCE_MANAGER: ("Finance Manager", FINANCE_MANAGER_PERMISSIONS),
    RoleCode.ENTITY_ADMIN: ("Entity Admin", list(P)),
    RoleCode.SUPER_ADMIN: ("Super Admin", list(P)),
}

SAMPLE_ORG = {"name": "Demo Holdings", "code": "DEMO"}

SAMPLE_USERS = [
    ("Business User", "business@demo.example", [RoleCode.BUSINESS_USER]),
    ("Legal Manager", "legal.manager@demo.example", [RoleCode.LEGAL_MANAGER]),
    ("Legal Head", "legal.head@demo.example", [RoleCode.LEGAL_HEAD]),
    ("Finance Manager", "finance@demo.example", [RoleCode.FINANCE_MANAGER]),
    ("Entity Admin", "admin@demo.example", [RoleCode.ENTITY_ADMIN]),
]


def _sync_policies(db: Session, role: Roles, permissions: Iterable[P]) -> int:
    existing = {(p.resource, p.action) for p in role.policies}
    added = 0
    for code in permissions:
        if (code.resource, code.action) in existing:
            continue
        role.policies.append(RolePolicy(
            org_id=role.org_id, resource=code.resource, action=code.action))
        added += 1
    return added


def seed_roles(db: Session) -> Dict[RoleCode, Roles]:
    """Create or top up the system roles (org_id NULL). Never removes policies."""
    roles = {}
    for code, (name, permissions) in ROLE_DEFINITIONS.items():
        role = db.query(Roles).filter(
            Roles.org_id.is_(None), Roles.code == code.value).first()
        if not role:
            role = Roles(
                org_id=None,
                code=code.value,
                name=name,
                description=f"{name} role with predefined permissions",
            )
            db.add(role)
            db.flush()
            logger.info("Created role %s", code.value)

        added = _sync_policies(db, role, permissions)
        if added:
            logger.info("Added %s policies to role %s", added, code.value)
        roles[code] = role

    db.flush()
    return roles


def seed_org(db: Session, name: str, code: str) -> Orgs:
    org = db.query(Orgs).filter(Orgs.code == code).first()
    if not org:
        org = Orgs(name=name, code=code, status="active")
        db.add(org)
        db.flush()
        logger.info("Created organization %s", code)
    return org


def seed_member(db: Session, org: Orgs, full_name: str, email: str,
                role_codes: List[RoleCode], roles: Dict[RoleCode, Roles]) -> Users:
    user = db.query(Users).filter(Users.email == email).first()
    if not user:
        user = Users(full_name=full_name, email=email,
                     status=UserStatus.ACTIVE.value)
        db.add(user)
        db.flush()
        logger.info("Created user %s", email)

    membership = db.query(UserOrganization).filter(
        UserOrganization.user_id == user.id,
        UserOrganization.org_id == org.id
    ).first()
    if not membership:
        membership = UserOrganization(
            user_id=user.id, org_id=org.id, status=UserStatus.ACTIVE.value)
        db.add(membership)
        db.flush()

    for code in role_codes:
        if roles[code] not in membership.roles:
            membership.roles.append(roles[code])

    db.flush()
    return user


def seed_all(db: Session, with_sample_data: bool = True) -> Dict[RoleCode, Roles]:
    roles = seed_roles(db)
    if with_sample_data:
        org = seed_org(db, SAMPLE_ORG["name"], SAMPLE_ORG["code"])
        for full_name, email, role_codes in SAMPLE_USERS:
            seed_member(db, org, full_name, email, role_codes, roles)
    db.commit()
    return roles


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    AuthBase.metadata.create_all(bind=auth_engine)

    db = AuthSessionLocal()
    try:
        seed_all(db)
        logger.info("Seeding finished")
    except Exception:
        db.rollback()
        logger.exception("Seeding failed")
        raise
    finally:
        db.close()

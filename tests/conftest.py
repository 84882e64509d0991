import os

# must be set before anything imports shared.core.config
os.environ["AUTH_DATABASE_URL"] = "sqlite://"
os.environ["CLM_DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"

import uuid
from types import SimpleNamespace

import pytest

from shared.core.auth import create_access_token
from shared.core.database import AuthBase, AuthSessionLocal, Base, ClmSessionLocal, auth_engine, clm_engine
from shared.core.schemas import AuthContext
from shared.data import seed_access
from shared.helpers.access_helper import build_auth_context
from shared.utils.enums import PermissionCode, RoleCode
from clm_service.app.crud.system import audit_crud
from clm_service.app.enum.contract_enum import ApprovalStatus, ApprovalType, ContractStatus
from clm_service.app.models.contracts.contracts import Contract
from clm_service.app.models.contracts.contract_approvals import ContractApproval
from clm_service.app.models.system.audit_logs import AuditLog  # noqa: F401


@pytest.fixture(autouse=True)
def databases():
    AuthBase.metadata.create_all(bind=auth_engine)
    Base.metadata.create_all(bind=clm_engine)
    audit_crud._retry_queue.clear()
    yield
    audit_crud._retry_queue.clear()
    Base.metadata.drop_all(bind=clm_engine)
    AuthBase.metadata.drop_all(bind=auth_engine)


@pytest.fixture
def auth_db():
    db = AuthSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def db():
    db = ClmSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def roles(auth_db):
    roles = seed_access.seed_roles(auth_db)
    auth_db.commit()
    return roles


@pytest.fixture
def org(auth_db, roles):
    org = seed_access.seed_org(auth_db, "Acme Corp", "ACME")
    auth_db.commit()
    return org


@pytest.fixture
def add_member(auth_db, org, roles):
    def _add(full_name, role_codes, email=None, member_org=None):
        email = email or f"{full_name.lower().replace(' ', '.')}@acme.example"
        user = seed_access.seed_member(
            auth_db, member_org or org, full_name, email, role_codes, roles)
        auth_db.commit()
        return user
    return _add


@pytest.fixture
def users(add_member):
    return SimpleNamespace(
        business=add_member("Bea Business", [RoleCode.BUSINESS_USER]),
        legal_manager=add_member("Lee Manager", [RoleCode.LEGAL_MANAGER]),
        legal_head=add_member("Hal Head", [RoleCode.LEGAL_HEAD]),
        finance=add_member("Fin Manager", [RoleCode.FINANCE_MANAGER]),
        admin=add_member("Ada Admin", [RoleCode.ENTITY_ADMIN]),
    )


@pytest.fixture
def context_for(auth_db, org):
    def _ctx(user, org_id=None):
        return build_auth_context(auth_db, user.id, org_id or org.id, name=user.full_name)
    return _ctx


@pytest.fixture
def superuser_ctx(org):
    return AuthContext(
        user_id=uuid.uuid4(),
        org_id=org.id,
        name="Root",
        permissions=frozenset(PermissionCode),
        roles=frozenset({RoleCode.SUPER_ADMIN}),
    )


@pytest.fixture
def make_contract(db, org):
    counter = {"n": 0}

    def _make(status=ContractStatus.DRAFT, org_id=None, **kwargs):
        counter["n"] += 1
        contract = Contract(
            org_id=org_id or org.id,
            reference=f"ACME-2401-T{counter['n']:05d}",
            title=kwargs.pop("title", f"Test contract {counter['n']}"),
            status=status,
            created_by=kwargs.pop("created_by", None) or uuid.uuid4(),
            **kwargs,
        )
        db.add(contract)
        db.commit()
        return contract
    return _make


@pytest.fixture
def make_approval(db):
    def _make(contract, approval_type=ApprovalType.LEGAL, actor_id=None,
              status=ApprovalStatus.PENDING):
        approval = ContractApproval(
            contract_id=contract.id,
            type=approval_type,
            status=status,
            actor_id=actor_id,
        )
        db.add(approval)
        db.commit()
        return approval
    return _make


@pytest.fixture
def token_for(org):
    def _token(user, org_id=None):
        return create_access_token({
            "user_id": user.id,
            "org_id": org_id or org.id,
            "name": user.full_name,
        })
    return _token


@pytest.fixture
def auth_headers(token_for):
    def _headers(user, org_id=None):
        return {"Authorization": f"Bearer {token_for(user, org_id)}"}
    return _headers

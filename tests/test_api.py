import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import DataError, IntegrityError, OperationalError

from shared.core.auth import create_access_token
from shared.utils.enums import RoleCode
from clm_service.app.crud.contracts import contracts_crud
from clm_service.app.enum.contract_enum import ApprovalStatus, ContractStatus
from clm_service.app.main import app as clm_app
from auth_service.app.main import app as auth_app


@pytest.fixture
def client():
    with TestClient(clm_app) as client:
        yield client


@pytest.fixture
def access_client():
    with TestClient(auth_app) as client:
        yield client


class TestContractsApi:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "Success"
        assert response.json()["data"] == {"status": "healthy"}

    def test_requests_need_a_token(self, client):
        response = client.get("/api/contracts/all")

        assert response.status_code in (401, 403)
        assert response.json()["status"] == "Failure"

    def test_invalid_token(self, client):
        response = client.get("/api/contracts/all",
                              headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_create_and_read_contract(self, client, users, auth_headers):
        headers = auth_headers(users.business)

        created = client.post("/api/contracts/create", headers=headers,
                              json={"title": "NDA", "counterparty_email": ""})
        body = created.json()

        assert created.status_code == 200
        assert body["status"] == "Success"
        assert body["data"]["status"] == ContractStatus.DRAFT.value
        assert body["data"]["counterparty_email"] is None

        fetched = client.get(f"/api/contracts/{body['data']['id']}", headers=headers)
        assert fetched.json()["data"]["reference"] == body["data"]["reference"]

    def test_unknown_contract_is_404(self, client, users, auth_headers):
        response = client.get(f"/api/contracts/{uuid.uuid4()}",
                              headers=auth_headers(users.business))

        assert response.status_code == 404
        assert response.json()["data"]["error"] == "ContractNotFound"
        assert response.json()["data"]["retryable"] is False

    def test_invalid_transition_is_409(self, client, users, auth_headers, make_contract):
        contract = make_contract(ContractStatus.DRAFT)

        response = client.post(f"/api/contracts/{contract.id}/finalize",
                               headers=auth_headers(users.legal_manager))

        assert response.status_code == 409
        assert response.json()["data"]["error"] == "InvalidTransition"

    def test_missing_org_in_token_is_forbidden(self, client, users):
        token = create_access_token({"user_id": users.business.id})

        response = client.get("/api/contracts/all",
                              headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403

    def test_blank_title_on_update_is_422(self, client, users, auth_headers, make_contract):
        contract = make_contract(ContractStatus.DRAFT)

        response = client.put(f"/api/contracts/{contract.id}",
                              headers=auth_headers(users.business), json={"title": ""})

        assert response.status_code == 422
        assert response.json()["status"] == "Failure"
        assert "title" in response.json()["message"]

    def test_delete_draft(self, client, users, auth_headers, make_contract):
        contract = make_contract(ContractStatus.DRAFT)
        headers = auth_headers(users.admin)

        response = client.delete(f"/api/contracts/{contract.id}", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"] is True
        assert client.get(f"/api/contracts/{contract.id}", headers=headers).status_code == 404


class TestDataStoreErrors:

    def _raise(self, error):
        def _fail(*args, **kwargs):
            raise error
        return _fail

    def test_connection_failure_is_retryable(self, client, users, auth_headers, monkeypatch):
        monkeypatch.setattr(contracts_crud, "get_contracts", self._raise(
            OperationalError("SELECT 1", {}, Exception("connection refused"))))

        response = client.get("/api/contracts/all", headers=auth_headers(users.business))

        assert response.status_code == 503
        assert response.json()["data"] == {"error": "ServiceUnavailable", "retryable": True}

    def test_constraint_violation_is_not_retryable(self, client, users, auth_headers,
                                                   monkeypatch):
        monkeypatch.setattr(contracts_crud, "get_contracts", self._raise(
            IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed"))))

        response = client.get("/api/contracts/all", headers=auth_headers(users.business))

        assert response.status_code == 409
        assert response.json()["data"] == {"error": "DataConflict", "retryable": False}

    def test_bad_value_is_not_retryable(self, client, users, auth_headers, monkeypatch):
        monkeypatch.setattr(contracts_crud, "get_contracts", self._raise(
            DataError("SELECT", {}, Exception("value too long"))))

        response = client.get("/api/contracts/all", headers=auth_headers(users.business))

        assert response.status_code == 400
        assert response.json()["data"]["retryable"] is False


class TestEscalationApi:

    def test_submit_escalate_and_approve(self, client, users, auth_headers, make_contract):
        contract = make_contract(ContractStatus.DRAFT)

        submitted = client.post(f"/api/contracts/{contract.id}/submit",
                                headers=auth_headers(users.business))
        assert submitted.json()["data"]["status"] == ContractStatus.SENT_TO_LEGAL.value

        escalated = client.post(
            f"/api/approvals/contracts/{contract.id}/escalate-to-legal-head",
            headers=auth_headers(users.legal_manager),
            json={"reason": "Integration Test Escalation"})
        assert escalated.status_code == 200
        approval = escalated.json()["data"]
        assert approval["actor_id"] == str(users.legal_head.id)
        assert approval["metadata"]["reason"] == "Integration Test Escalation"

        inbox = client.get("/api/approvals/pending", headers=auth_headers(users.legal_head))
        assert [a["id"] for a in inbox.json()["data"]] == [approval["id"]]

        approved = client.post(f"/api/approvals/{approval['id']}/approve",
                               headers=auth_headers(users.legal_head),
                               json={"comment": "LGTM"})
        assert approved.json()["data"]["status"] == ApprovalStatus.APPROVED.value

        detail = client.get(f"/api/contracts/{contract.id}",
                            headers=auth_headers(users.business)).json()["data"]
        assert detail["status"] == ContractStatus.APPROVED_LEGAL_HEAD.value
        assert [a["status"] for a in detail["approvals"]] == [
            ApprovalStatus.ESCALATED.value, ApprovalStatus.APPROVED.value]

        history = client.get(f"/api/audit/contracts/{contract.id}",
                             headers=auth_headers(users.legal_manager)).json()["data"]
        assert {log["action"] for log in history} == {
            "CONTRACT_SUBMITTED", "CONTRACT_ESCALATED_TO_LEGAL_HEAD", "CONTRACT_APPROVED"}

    def test_escalate_without_permission_is_403(self, client, users, auth_headers,
                                                make_contract):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)

        response = client.post(
            f"/api/approvals/contracts/{contract.id}/escalate-to-legal-head",
            headers=auth_headers(users.business), json={"reason": "Please"})

        assert response.status_code == 403
        assert response.json()["data"]["error"] == "Unauthorized"

    def test_second_approve_is_409(self, client, users, auth_headers, make_contract,
                                   make_approval):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)
        approval = make_approval(contract, actor_id=users.legal_manager.id)
        headers = auth_headers(users.legal_manager)

        first = client.post(f"/api/approvals/{approval.id}/approve", headers=headers)
        second = client.post(f"/api/approvals/{approval.id}/approve", headers=headers)

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["data"]["error"] == "NotPending"

    def test_reject_without_comment_is_400(self, client, users, auth_headers, make_contract,
                                           make_approval):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)
        approval = make_approval(contract, actor_id=users.legal_manager.id)

        response = client.post(f"/api/approvals/{approval.id}/reject",
                               headers=auth_headers(users.legal_manager), json={})

        assert response.status_code == 400
        assert response.json()["message"] == "Rejection comment is required"

    def test_escalate_without_legal_head_is_422(self, client, auth_headers, add_member,
                                                make_contract):
        manager = add_member("Solo Manager", [RoleCode.LEGAL_MANAGER])
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)

        response = client.post(
            f"/api/approvals/contracts/{contract.id}/escalate-to-legal-head",
            headers=auth_headers(manager), json={"reason": "Senior review"})

        assert response.status_code == 422
        assert response.json()["data"]["error"] == "NoEligibleApprover"


class TestAccessApi:

    def test_me(self, access_client, users, auth_headers):
        response = access_client.get("/api/access/me", headers=auth_headers(users.legal_head))
        data = response.json()["data"]

        assert response.status_code == 200
        assert data["roles"] == ["LEGAL_HEAD"]
        assert "approval:legal:act" in data["permissions"]

    def test_role_members(self, access_client, users, auth_headers):
        response = access_client.get("/api/access/roles/legal_head/users",
                                     headers=auth_headers(users.admin))

        assert [u["id"] for u in response.json()["data"]] == [str(users.legal_head.id)]

    def test_role_members_needs_audit_or_admin(self, access_client, users, auth_headers):
        response = access_client.get("/api/access/roles/LEGAL_HEAD/users",
                                     headers=auth_headers(users.business))

        assert response.status_code == 403

import uuid

import pytest
from fastapi import HTTPException
from sqlalchemy import update

from shared.utils.enums import RoleCode
from shared.helpers.app_errors import (
    ApprovalNotFound, ContractNotFound, DuplicatePending, NotPending, Unauthorized
)
from clm_service.app.crud.contracts import contract_approvals_crud as ledger
from clm_service.app.crud.contracts.contract_workflow import workflow_unit
from clm_service.app.enum.contract_enum import ApprovalStatus, ApprovalType, ContractStatus
from clm_service.app.models.contracts.contracts import Contract
from clm_service.app.models.contracts.contract_approvals import ContractApproval
from clm_service.app.schemas.contracts.contract_approvals_schemas import FinanceReviewRequest


class TestCreateApproval:

    def test_creates_pending_approval(self, db, auth_db, make_contract, users):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)

        with workflow_unit(db):
            approval = ledger.create_approval(
                db, auth_db, contract, ApprovalType.LEGAL, actor_id=users.legal_manager.id)

        assert approval.status == ApprovalStatus.PENDING
        assert approval.actor_id == users.legal_manager.id

    def test_second_pending_of_same_type_is_refused(self, db, auth_db, make_contract, make_approval):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)
        make_approval(contract, ApprovalType.LEGAL)

        with pytest.raises(DuplicatePending):
            ledger.create_approval(db, auth_db, contract, ApprovalType.LEGAL)

    def test_pending_rows_of_different_types_coexist(self, db, auth_db, make_contract, make_approval):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)
        make_approval(contract, ApprovalType.LEGAL)

        with workflow_unit(db):
            ledger.create_approval(db, auth_db, contract, ApprovalType.FINANCE)

        assert len(db.query(ContractApproval).filter_by(
            contract_id=contract.id, status=ApprovalStatus.PENDING).all()) == 2

    def test_unique_index_backs_the_single_pending_rule(self, db, make_contract, make_approval):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)
        make_approval(contract, ApprovalType.LEGAL)

        with pytest.raises(DuplicatePending):
            with workflow_unit(db):
                db.add(ContractApproval(contract_id=contract.id, type=ApprovalType.LEGAL,
                                        status=ApprovalStatus.PENDING))

    def test_assignee_must_hold_an_approver_role(self, db, auth_db, make_contract, users):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)

        with pytest.raises(Unauthorized):
            ledger.create_approval(
                db, auth_db, contract, ApprovalType.LEGAL, actor_id=users.business.id)


class TestApprove:

    def test_legal_manager_approves(self, db, make_contract, make_approval, context_for, users):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)
        approval = make_approval(contract, actor_id=users.legal_manager.id)

        result = ledger.approve_approval(db, approval.id, context_for(users.legal_manager), "Fine")

        assert result.status == ApprovalStatus.APPROVED
        assert result.comment == "Fine"
        assert result.acted_at is not None
        db.refresh(contract)
        assert contract.status == ContractStatus.LEGAL_APPROVED

    def test_second_resolution_is_not_pending(self, db, make_contract, make_approval,
                                              context_for, users):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)
        approval = make_approval(contract, actor_id=users.legal_manager.id)
        ctx = context_for(users.legal_manager)
        ledger.approve_approval(db, approval.id, ctx)

        with pytest.raises(NotPending):
            ledger.approve_approval(db, approval.id, ctx)
        with pytest.raises(NotPending):
            ledger.reject_approval(db, approval.id, ctx, "Too late")

        db.refresh(contract)
        assert contract.status == ContractStatus.LEGAL_APPROVED

    def test_permission_is_checked_before_approval_state(self, db, make_contract, make_approval,
                                                         context_for, users):
        contract = make_contract(ContractStatus.LEGAL_APPROVED)
        approval = make_approval(contract, status=ApprovalStatus.APPROVED)

        with pytest.raises(Unauthorized):
            ledger.approve_approval(db, approval.id, context_for(users.finance))
        with pytest.raises(Unauthorized):
            ledger.resolve(db, approval.id, ApprovalStatus.APPROVED, None,
                           context_for(users.business))

    def test_approval_of_deleted_contract_is_not_found(self, db, make_contract, make_approval,
                                                       context_for, users):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL, is_deleted=True)
        approval = make_approval(contract)

        with pytest.raises(ApprovalNotFound):
            ledger.approve_approval(db, approval.id, context_for(users.legal_manager))

    def test_concurrent_resolution_loses_the_row(self, db, make_contract, make_approval,
                                                 context_for, users):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)
        approval = make_approval(contract, actor_id=users.legal_manager.id)
        ctx = context_for(users.legal_manager)

        # another request resolves the row behind this session's back
        db.execute(
            update(ContractApproval)
            .where(ContractApproval.id == approval.id)
            .values(status=ApprovalStatus.APPROVED)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        assert approval.status == ApprovalStatus.PENDING

        with pytest.raises(NotPending):
            ledger.approve_approval(db, approval.id, ctx)

        db.expire_all()
        assert db.get(Contract, contract.id).status == ContractStatus.SENT_TO_LEGAL

    def test_assigned_approval_belongs_to_its_assignee(self, db, add_member, make_contract,
                                                      make_approval, context_for, users):
        other_manager = add_member("Other Manager", [RoleCode.LEGAL_MANAGER])
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)
        approval = make_approval(contract, actor_id=users.legal_manager.id)

        with pytest.raises(Unauthorized):
            ledger.approve_approval(db, approval.id, context_for(other_manager))

    def test_unassigned_approval_needs_an_approver_role(self, db, make_contract, make_approval,
                                                       context_for, users):
        contract = make_contract(ContractStatus.SENT_TO_FINANCE)
        approval = make_approval(contract, ApprovalType.FINANCE)

        with pytest.raises(Unauthorized):
            ledger.approve_approval(db, approval.id, context_for(users.legal_manager))

        result = ledger.approve_approval(db, approval.id, context_for(users.finance))
        assert result.actor_id == users.finance.id

    def test_approval_of_another_org_is_not_found(self, db, make_contract, make_approval,
                                                  context_for, users):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL, org_id=uuid.uuid4())
        approval = make_approval(contract)

        with pytest.raises(ApprovalNotFound):
            ledger.approve_approval(db, approval.id, context_for(users.legal_manager))


class TestReject:

    def test_rejection_requires_a_comment(self, db, make_contract, make_approval,
                                          context_for, users):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)
        approval = make_approval(contract, actor_id=users.legal_manager.id)

        with pytest.raises(HTTPException) as exc:
            ledger.reject_approval(db, approval.id, context_for(users.legal_manager), "  ")

        assert exc.value.status_code == 400
        db.refresh(approval)
        assert approval.status == ApprovalStatus.PENDING

    def test_rejection_closes_the_contract_review(self, db, make_contract, make_approval,
                                                  context_for, users):
        contract = make_contract(ContractStatus.SENT_TO_FINANCE)
        legal = make_approval(contract, ApprovalType.LEGAL)
        finance = make_approval(contract, ApprovalType.FINANCE, actor_id=users.finance.id)

        result = ledger.reject_approval(
            db, finance.id, context_for(users.finance), "Budget exceeded")

        assert result.status == ApprovalStatus.REJECTED
        db.refresh(contract)
        db.refresh(legal)
        assert contract.status == ContractStatus.REJECTED
        assert legal.status == ApprovalStatus.CANCELLED


class TestFinanceReview:

    def test_request_finance_review(self, db, auth_db, make_contract, context_for, users):
        contract = make_contract(ContractStatus.LEGAL_APPROVED)

        approval = ledger.request_finance_review(
            db, auth_db, contract.id, context_for(users.legal_manager),
            FinanceReviewRequest(finance_approver_id=users.finance.id))

        assert approval.type == ApprovalType.FINANCE
        assert approval.actor_id == users.finance.id
        db.refresh(contract)
        assert contract.status == ContractStatus.SENT_TO_FINANCE

    def test_finance_approval_moves_to_reviewed(self, db, auth_db, make_contract,
                                                context_for, users):
        contract = make_contract(ContractStatus.LEGAL_APPROVED)
        approval = ledger.request_finance_review(
            db, auth_db, contract.id, context_for(users.legal_manager), FinanceReviewRequest())

        ledger.approve_approval(db, approval.id, context_for(users.finance))

        db.refresh(contract)
        assert contract.status == ContractStatus.FINANCE_REVIEWED


class TestQueries:

    def test_pending_inbox_shows_assigned_and_unassigned(self, db, make_contract, make_approval,
                                                         context_for, users, add_member):
        other_manager = add_member("Other Manager", [RoleCode.LEGAL_MANAGER])
        mine = make_approval(make_contract(ContractStatus.SENT_TO_LEGAL),
                             actor_id=users.legal_manager.id)
        open_one = make_approval(make_contract(ContractStatus.SENT_TO_LEGAL))
        make_approval(make_contract(ContractStatus.SENT_TO_LEGAL), actor_id=other_manager.id)
        make_approval(make_contract(ContractStatus.SENT_TO_FINANCE), ApprovalType.FINANCE)

        inbox = ledger.get_pending_approvals(db, context_for(users.legal_manager))

        assert {a.id for a in inbox} == {mine.id, open_one.id}
        assert all(a.contract_reference.startswith("ACME-") for a in inbox)

    def test_pending_inbox_is_empty_without_view_permission(self, db, make_contract,
                                                            make_approval, context_for, users):
        make_approval(make_contract(ContractStatus.SENT_TO_LEGAL))
        assert ledger.get_pending_approvals(db, context_for(users.business)) == []

    def test_list_contract_approvals(self, db, make_contract, make_approval, context_for, users):
        contract = make_contract(ContractStatus.SENT_TO_LEGAL)
        make_approval(contract, status=ApprovalStatus.ESCALATED)
        make_approval(contract)

        approvals = ledger.list_contract_approvals(db, contract.id, context_for(users.business))

        assert [a.status for a in approvals] == [ApprovalStatus.ESCALATED, ApprovalStatus.PENDING]

    def test_list_contract_approvals_for_unknown_contract(self, db, context_for, users):
        with pytest.raises(ContractNotFound):
            ledger.list_contract_approvals(db, uuid.uuid4(), context_for(users.business))

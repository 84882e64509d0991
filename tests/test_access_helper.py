import uuid

from shared.helpers import access_helper
from shared.models import Orgs, RolePolicy, Roles, UserOrganization
from shared.utils.enums import PermissionCode, RoleCode, UserStatus


class TestHasPermission:

    def test_role_policy_grants_permission(self, auth_db, org, users):
        assert access_helper.has_permission(
            auth_db, users.legal_manager.id, org.id, PermissionCode.APPROVAL_LEGAL_ACT)

    def test_accepts_string_codes(self, auth_db, org, users):
        assert access_helper.has_permission(
            auth_db, users.business.id, org.id, "contract:create")

    def test_missing_policy_denies(self, auth_db, org, users):
        assert not access_helper.has_permission(
            auth_db, users.business.id, org.id, PermissionCode.APPROVAL_LEGAL_ACT)

    def test_unknown_user_denies(self, auth_db, org, users):
        assert not access_helper.has_permission(
            auth_db, uuid.uuid4(), org.id, PermissionCode.CONTRACT_VIEW)

    def test_other_org_denies(self, auth_db, users):
        assert not access_helper.has_permission(
            auth_db, users.legal_manager.id, uuid.uuid4(), PermissionCode.CONTRACT_VIEW)

    def test_inactive_membership_denies(self, auth_db, org, users):
        membership = auth_db.query(UserOrganization).filter(
            UserOrganization.user_id == users.legal_manager.id).one()
        membership.status = UserStatus.INACTIVE.value
        auth_db.commit()

        assert not access_helper.has_permission(
            auth_db, users.legal_manager.id, org.id, PermissionCode.APPROVAL_LEGAL_ACT)

    def test_deleted_role_denies(self, auth_db, org, users, roles):
        roles[RoleCode.FINANCE_MANAGER].is_deleted = True
        auth_db.commit()

        assert not access_helper.has_permission(
            auth_db, users.finance.id, org.id, PermissionCode.APPROVAL_FINANCE_ACT)


class TestRoles:

    def test_has_role(self, auth_db, org, users):
        assert access_helper.has_role(auth_db, users.legal_head.id, org.id, RoleCode.LEGAL_HEAD)
        assert not access_helper.has_role(auth_db, users.legal_manager.id, org.id, RoleCode.LEGAL_HEAD)

    def test_find_users_with_role_is_org_scoped(self, auth_db, org, users, add_member):
        other_org = Orgs(name="Other Corp", code="OTHR")
        auth_db.add(other_org)
        auth_db.commit()
        add_member("Outside Head", [RoleCode.LEGAL_HEAD], member_org=other_org)

        heads = access_helper.find_users_with_role(auth_db, org.id, RoleCode.LEGAL_HEAD)

        assert [u.id for u in heads] == [users.legal_head.id]

    def test_find_users_with_role_is_ordered_by_id(self, auth_db, org, users, add_member):
        second = add_member("Second Head", [RoleCode.LEGAL_HEAD])

        heads = access_helper.find_users_with_role(auth_db, org.id, RoleCode.LEGAL_HEAD)

        assert [u.id for u in heads] == sorted([users.legal_head.id, second.id])

    def test_org_specific_role_from_another_org_is_ignored(self, auth_db, org, users):
        foreign_role = Roles(org_id=uuid.uuid4(), code=RoleCode.LEGAL_HEAD.value, name="Foreign Head")
        auth_db.add(foreign_role)
        membership = auth_db.query(UserOrganization).filter(
            UserOrganization.user_id == users.business.id).one()
        membership.roles.append(foreign_role)
        auth_db.commit()

        assert not access_helper.has_role(auth_db, users.business.id, org.id, RoleCode.LEGAL_HEAD)


class TestAuthContext:

    def test_build_auth_context_collects_roles_and_permissions(self, auth_db, org, users):
        ctx = access_helper.build_auth_context(auth_db, users.legal_head.id, org.id)

        assert ctx.roles == frozenset({RoleCode.LEGAL_HEAD})
        assert ctx.can(PermissionCode.APPROVAL_LEGAL_ACT)
        assert not ctx.can(PermissionCode.APPROVAL_FINANCE_ACT)

    def test_unknown_policy_rows_are_skipped(self, auth_db, org, users, roles):
        roles[RoleCode.BUSINESS_USER].policies.append(
            RolePolicy(resource="template", action="view"))
        auth_db.commit()

        permissions = access_helper.get_permissions(auth_db, users.business.id, org.id)

        assert PermissionCode.CONTRACT_CREATE in permissions
        assert all(isinstance(p, PermissionCode) for p in permissions)

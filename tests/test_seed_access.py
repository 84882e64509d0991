from shared.data import seed_access
from shared.helpers import access_helper
from shared.models import Orgs, RolePolicy, Roles, UserOrganization, Users
from shared.utils.enums import PermissionCode, RoleCode


class TestSeedAccess:

    def test_seed_is_idempotent(self, auth_db):
        seed_access.seed_all(auth_db)
        counts = (
            auth_db.query(Roles).count(),
            auth_db.query(RolePolicy).count(),
            auth_db.query(Users).count(),
            auth_db.query(UserOrganization).count(),
            auth_db.query(Orgs).count(),
        )

        seed_access.seed_all(auth_db)

        assert counts == (
            auth_db.query(Roles).count(),
            auth_db.query(RolePolicy).count(),
            auth_db.query(Users).count(),
            auth_db.query(UserOrganization).count(),
            auth_db.query(Orgs).count(),
        )
        assert counts[0] == len(RoleCode)

    def test_missing_policies_are_topped_up(self, auth_db):
        roles = seed_access.seed_roles(auth_db)
        legal = roles[RoleCode.LEGAL_MANAGER]
        auth_db.query(RolePolicy).filter(
            RolePolicy.role_id == legal.id, RolePolicy.resource == "approval:legal",
            RolePolicy.action == "act").delete()
        auth_db.commit()
        auth_db.expire_all()

        seed_access.seed_roles(auth_db)
        auth_db.commit()

        assert auth_db.query(RolePolicy).filter(
            RolePolicy.role_id == legal.id, RolePolicy.resource == "approval:legal",
            RolePolicy.action == "act").count() == 1

    def test_sample_users_get_their_role_permissions(self, auth_db):
        seed_access.seed_all(auth_db)
        org = auth_db.query(Orgs).filter(Orgs.code == seed_access.SAMPLE_ORG["code"]).one()
        head = auth_db.query(Users).filter(Users.email == "legal.head@demo.example").one()
        finance = auth_db.query(Users).filter(Users.email == "finance@demo.example").one()

        assert access_helper.has_permission(
            auth_db, head.id, org.id, PermissionCode.APPROVAL_LEGAL_ACT)
        assert access_helper.has_role(auth_db, head.id, org.id, RoleCode.LEGAL_HEAD)
        assert not access_helper.has_permission(
            auth_db, finance.id, org.id, PermissionCode.APPROVAL_LEGAL_ACT)

    def test_admin_roles_hold_every_permission(self, auth_db):
        roles = seed_access.seed_roles(auth_db)

        for code in (RoleCode.ENTITY_ADMIN, RoleCode.SUPER_ADMIN):
            granted = {f"{p.resource}:{p.action}" for p in roles[code].policies}
            assert granted == {p.value for p in PermissionCode}

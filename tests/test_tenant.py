from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from app.models.organization import OrganizationMember
from app.services.tenant import build_tenant_context, resolve_tenant_context


class TestResolveTenantContext:
    """Tenant resolution from organization membership"""

    def test_user_without_membership_is_solo(self, db_session, create_test_user):
        user = create_test_user()

        ctx = resolve_tenant_context(db_session, user)

        assert ctx.org_id is None
        assert ctx.namespace == user.id
        assert not ctx.is_org

    def test_single_membership(self, db_session, create_test_user, create_test_org):
        user = create_test_user()
        org = create_test_org(members=[(user, "member")])

        ctx = resolve_tenant_context(db_session, user)

        assert ctx.org_id == org.id
        assert ctx.namespace == org.id
        assert ctx.role == "member"

    def test_owner_membership_preferred(self, db_session, create_test_user, create_test_org):
        user = create_test_user()
        create_test_org(name="Member Org", members=[(user, "member")])
        owned = create_test_org(name="Owned Org", members=[(user, "owner")])
        create_test_org(name="Admin Org", members=[(user, "admin")])

        ctx = resolve_tenant_context(db_session, user)

        assert ctx.org_id == owned.id

    def test_newest_membership_wins_within_same_role(
        self, db_session, create_test_user, create_test_org
    ):
        user = create_test_user()
        older = create_test_org(name="Older")
        newer = create_test_org(name="Newer")
        now = datetime.now(timezone.utc)
        db_session.add_all([
            OrganizationMember(org_id=older.id, user_id=user.id, role="member",
                               created_at=now - timedelta(days=2)),
            OrganizationMember(org_id=newer.id, user_id=user.id, role="member",
                               created_at=now),
        ])
        db_session.commit()

        ctx = resolve_tenant_context(db_session, user)

        assert ctx.org_id == newer.id

    def test_old_owner_membership_beats_many_newer_memberships(
        self, db_session, create_test_user, create_test_org
    ):
        user = create_test_user()
        owned = create_test_org(name="Owned")
        now = datetime.now(timezone.utc)
        db_session.add(OrganizationMember(org_id=owned.id, user_id=user.id, role="owner",
                                          created_at=now - timedelta(days=30)))
        for i in range(12):
            org = create_test_org(name=f"Joined {i}")
            db_session.add(OrganizationMember(org_id=org.id, user_id=user.id, role="member",
                                              created_at=now - timedelta(hours=i)))
        db_session.commit()

        ctx = resolve_tenant_context(db_session, user)

        assert ctx.org_id == owned.id
        assert ctx.role == "owner"

    def test_lookup_error_falls_back_to_solo(self, db_session, create_test_user, monkeypatch):
        user = create_test_user()

        def broken_query(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("no such table"))

        monkeypatch.setattr(db_session, "query", broken_query)

        ctx = resolve_tenant_context(db_session, user)

        assert ctx.org_id is None
        assert ctx.namespace == user.id


class TestBuildTenantContext:
    def test_default_sentinel_becomes_solo(self):
        ctx = build_tenant_context("user-1", "default")

        assert ctx.org_id is None
        assert ctx.namespace == "user-1"

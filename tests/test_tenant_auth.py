"""
Tenant-scoped authorization: claims snapshots, the profile fallback right
after a business is created, and the existence/tenant/role check ordering.
"""
import pytest
from flask import g

from pos_api.models.user_model import User
from pos_api.services.tenant_service import TenantContext, require_tenant_resource
from pos_api.utils.errors import AuthenticationError, AuthorizationError, NotFoundError

from .conftest import auth_headers, create_category, login, refresh, register


class TestStaleClaims:

    def test_new_business_usable_before_token_refresh(self, client):
        register(client, "fresh@cafe.test")
        tokens = login(client, "fresh@cafe.test")
        headers = auth_headers(tokens["id_token"])

        created = client.post("/api/business", json={"name": "Test Cafe"}, headers=headers)
        assert created.status_code == 201
        assert "refresh" in created.get_json()["note"]

        # the token still carries role=user and no business_id
        profile = client.get("/api/business/profile", headers=headers)
        assert profile.status_code == 200
        assert profile.get_json()["data"]["id"] == created.get_json()["business_id"]

        category = client.post("/api/categories", json={"name": "Beverages"}, headers=headers)
        assert category.status_code == 201

    def test_refresh_picks_up_new_claims(self, client, identity):
        register(client, "claims@cafe.test")
        tokens = login(client, "claims@cafe.test")
        assert identity.verify_bearer_token(tokens["id_token"])["claims"] == {"role": "user"}

        created = client.post("/api/business", json={"name": "Test Cafe"}, headers=auth_headers(tokens["id_token"]))
        business_id = created.get_json()["business_id"]

        # issued tokens are snapshots
        assert identity.verify_bearer_token(tokens["id_token"])["claims"] == {"role": "user"}

        refreshed = refresh(client, tokens["refresh_token"])
        claims = identity.verify_bearer_token(refreshed["id_token"])["claims"]
        assert claims == {"role": "owner", "business_id": business_id}

    def test_context_from_profile(self, app, store):
        User(store).create_profile("u-1", "u1@cafe.test", role="owner", business_id="biz-1")

        with app.test_request_context():
            g.current_user = {"uid": "u-1", "role": "user", "business_id": None}
            context = TenantContext.from_current_user(store)

        assert context.business_id == "biz-1"
        assert context.role == "owner"
        assert context.from_profile

    def test_claim_for_deleted_business_is_dropped(self, app, store):
        User(store).create_profile("u-1", "u1@cafe.test", role="user")

        with app.test_request_context():
            g.current_user = {"uid": "u-1", "role": "owner", "business_id": "gone-biz"}
            context = TenantContext.from_current_user(store)

        assert context.business_id is None
        assert context.role == "user"
        with pytest.raises(AuthorizationError):
            context.require_business()

    def test_context_requires_authenticated_user(self, app, store):
        with app.test_request_context():
            with pytest.raises(AuthenticationError):
                TenantContext.from_current_user(store)


class TestCheckOrdering:

    def test_missing_document_is_not_found_before_tenant_check(self):
        outsider = TenantContext(uid="u-2", role="staff", business_id="biz-2")
        with pytest.raises(NotFoundError):
            require_tenant_resource(None, outsider, owner_only=True, label="Category")

    def test_foreign_document_is_unauthorized_before_role_check(self):
        staff = TenantContext(uid="u-2", role="staff", business_id="biz-2")
        with pytest.raises(AuthorizationError) as exc:
            require_tenant_resource({"id": "c1", "business_id": "biz-1"}, staff, owner_only=True)
        assert exc.value.message == "Unauthorized"

    def test_own_document_needs_owner_role_when_requested(self):
        staff = TenantContext(uid="u-2", role="staff", business_id="biz-1")
        doc = {"id": "c1", "business_id": "biz-1"}

        assert require_tenant_resource(doc, staff) is doc
        with pytest.raises(AuthorizationError):
            require_tenant_resource(doc, staff, owner_only=True)

    def test_business_ownership_uses_owner_id(self):
        member = TenantContext(uid="u-2", role="manager", business_id="biz-1")
        business = {"id": "biz-1", "owner_id": "u-1"}

        assert require_tenant_resource(business, member, tenant_field="id") is business
        with pytest.raises(AuthorizationError):
            require_tenant_resource(business, member, owner_only=True, tenant_field="id")


class TestHttpAuthorization:

    def test_missing_and_invalid_tokens(self, client):
        assert client.get("/api/categories").status_code == 401
        response = client.get("/api/categories", headers=auth_headers("not-a-jwt"))
        assert response.status_code == 401
        assert response.get_json()["success"] is False

    def test_user_without_business(self, client):
        register(client, "nobiz@cafe.test")
        tokens = login(client, "nobiz@cafe.test")

        response = client.post("/api/categories", json={"name": "Beverages"}, headers=auth_headers(tokens["id_token"]))

        assert response.status_code == 403
        assert response.get_json()["message"] == "No business associated with user"

    def test_unknown_business_is_not_found(self, client, owner_a):
        response = client.put("/api/business/does-not-exist", json={"name": "x"}, headers=owner_a["headers"])
        assert response.status_code == 404

    def test_other_owners_business_is_forbidden(self, client, owner_a, owner_b):
        response = client.put(
            f"/api/business/{owner_b['business_id']}", json={"name": "Hijacked"}, headers=owner_a["headers"]
        )
        assert response.status_code == 403

    def test_staff_cannot_update_business(self, client, owner_a):
        added = client.post(
            "/api/business/members",
            json={"email": "staff@cafe.test", "password": "Password123!", "role": "staff"},
            headers=owner_a["headers"],
        )
        assert added.status_code == 201

        staff = login(client, "staff@cafe.test")
        staff_headers = auth_headers(staff["id_token"])

        # members work inside the tenant but cannot administer it
        assert create_category(client, {"headers": staff_headers})["business_id"] == owner_a["business_id"]
        response = client.put(
            f"/api/business/{owner_a['business_id']}", json={"name": "Renamed"}, headers=staff_headers
        )
        assert response.status_code == 403

        members = client.get("/api/business/members", headers=owner_a["headers"]).get_json()["data"]
        assert {m["role"] for m in members} == {"owner", "staff"}

    def test_staff_cannot_add_members(self, client, owner_a):
        client.post(
            "/api/business/members",
            json={"email": "mgr@cafe.test", "password": "Password123!", "role": "manager"},
            headers=owner_a["headers"],
        )
        manager = login(client, "mgr@cafe.test")

        response = client.post(
            "/api/business/members",
            json={"email": "x@cafe.test", "password": "Password123!", "role": "staff"},
            headers=auth_headers(manager["id_token"]),
        )
        assert response.status_code == 403

"""
Authorization tests for AquaDist.

Verifies:
- Requests without a valid actor return 401
- Roles are denied capabilities they do not hold (403)
- Edit and cancel below admin only apply to records the actor created
- Admin holds every capability
"""

import pytest

from aquadist.services import order_service, permission_service


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without an actor."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/customers"),
            ("GET", "/api/inventory"),
            ("POST", "/api/inventory/movements"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/routes"),
            ("GET", "/api/finances/summary"),
            ("GET", "/api/reports/dashboard"),
            ("GET", "/api/users/me"),
        ],
    )
    def test_requires_actor(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_malformed_actor_id(self, client, db_session):
        resp = client.get("/api/products", headers={"X-Actor-Id": "abc"})
        assert resp.status_code == 401

    def test_non_ascii_digit_actor_id(self, client, db_session):
        resp = client.get("/api/products", headers={"X-Actor-Id": "²"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid actor id"

    def test_unknown_actor(self, client, db_session):
        resp = client.get("/api/products", headers={"X-Actor-Id": "4242"})
        assert resp.status_code == 401

    def test_inactive_actor(self, client, db_session, seller, headers_for):
        seller.is_active = False
        db_session.commit()
        resp = client.get("/api/products", headers=headers_for(seller))
        assert resp.status_code == 401


# =============================================================================
# ROLE CAPABILITIES (403)
# =============================================================================


class TestRoleDenied:

    def test_seller_cannot_manage_products(self, client, seller_headers):
        resp = client.post("/api/products", json={"code": "X", "name": "X", "price": 1}, headers=seller_headers)
        assert resp.status_code == 403
        assert resp.get_json()["required_permission"] == "MANAGE_PRODUCTS"

    def test_seller_cannot_adjust_inventory(self, client, seller_headers, water):
        resp = client.post(
            "/api/inventory/movements",
            json={"product_id": water.id, "direction": "in", "quantity": 5},
            headers=seller_headers,
        )
        assert resp.status_code == 403

    def test_seller_cannot_view_finances(self, client, seller_headers):
        resp = client.get("/api/finances/summary", headers=seller_headers)
        assert resp.status_code == 403

    def test_seller_cannot_delete_sales(self, client, seller_headers):
        resp = client.delete("/api/sales/1", headers=seller_headers)
        assert resp.status_code == 403

    def test_driver_cannot_view_sales(self, client, driver_headers):
        resp = client.get("/api/sales", headers=driver_headers)
        assert resp.status_code == 403

    def test_collector_cannot_create_sale(self, client, collector_headers):
        resp = client.post("/api/sales", json={}, headers=collector_headers)
        assert resp.status_code == 403

    def test_non_admin_cannot_manage_users(self, client, seller_headers):
        resp = client.get("/api/users", headers=seller_headers)
        assert resp.status_code == 403


# =============================================================================
# OWNERSHIP-SCOPED CAPABILITIES
# =============================================================================


class TestOwnership:

    def _sale(self, customer, product, actor):
        cart = order_service.build_cart([{"product_id": product.id, "quantity": 1}])
        return order_service.finalize_order(customer.id, cart, "cash", "in_person", actor=actor).header

    def test_seller_cannot_edit_another_sellers_sale(self, client, other_seller, seller_headers, customer, water):
        sale = self._sale(customer, water, other_seller)
        resp = client.put(
            f"/api/sales/{sale.id}",
            json={"items": [{"product_id": water.id, "quantity": 2}]},
            headers=seller_headers,
        )
        assert resp.status_code == 403

    def test_seller_cannot_cancel_another_sellers_sale(self, client, other_seller, seller_headers, customer, water):
        sale = self._sale(customer, water, other_seller)
        resp = client.post(f"/api/sales/{sale.id}/cancel", headers=seller_headers)
        assert resp.status_code == 403

    def test_seller_can_edit_own_sale(self, client, seller, seller_headers, customer, water):
        sale = self._sale(customer, water, seller)
        resp = client.put(
            f"/api/sales/{sale.id}",
            json={"items": [{"product_id": water.id, "quantity": 2}]},
            headers=seller_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["sale"]["items"][0]["quantity"] == 2

    def test_admin_can_cancel_any_sale(self, client, seller, admin_headers, customer, water):
        sale = self._sale(customer, water, seller)
        resp = client.post(f"/api/sales/{sale.id}/cancel", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["sale"]["status"] == "cancelled"


class TestCan:

    def test_admin_holds_every_capability(self, db_session, admin):
        assert permission_service.can(admin, "MANAGE_USERS")
        assert permission_service.can(admin, "DELETE_SALE")

    def test_unknown_capability_denied(self, db_session, admin):
        assert not permission_service.can(admin, "LAUNCH_ROCKETS")

    def test_no_actor_denied(self):
        assert not permission_service.can(None, "VIEW_CATALOG")

    def test_me_lists_capabilities(self, client, driver_headers):
        resp = client.get("/api/users/me", headers=driver_headers)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["user"]["role"] == "delivery"
        assert "COMPLETE_ROUTES" in data["capabilities"]
        assert "VIEW_FINANCES" not in data["capabilities"]

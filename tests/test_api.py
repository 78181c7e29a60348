"""
HTTP tests through FastAPI's TestClient, with the database and external
collaborators swapped via dependency overrides.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.api import create_app
from storefront.api import deps
from storefront.data.database import get_db
from storefront.domain.enums import PaymentOutcome
from storefront.domain.errors import PaymentGatewayUnavailable
from storefront.utils.settings import PAYMENT_CALLBACK_SECRET

CHECKOUT = {"shippingAddress": "1 Test Street, Nairobi", "paymentMethod": "CARD"}


@pytest.fixture
def client(session_factory, payment, lock_service, notifier, publisher, image_client):
    app = create_app()

    def override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[deps.get_payment_client] = lambda: payment
    app.dependency_overrides[deps.get_lock_service] = lambda: lock_service
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    app.dependency_overrides[deps.get_publisher] = lambda: publisher
    app.dependency_overrides[deps.get_image_client] = lambda: image_client

    with TestClient(app) as c:
        yield c


def register_and_login(client, username, role="user", email=None):
    resp = client.post(
        "/auth/register",
        json={"username": username, "password": "secret123", "role": role, "email": email},
    )
    assert resp.status_code == 201, resp.text
    resp = client.post("/auth/login", json={"username": username, "password": "secret123"})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def admin(client):
    return register_and_login(client, "admin", role="admin")


@pytest.fixture
def shopper(client):
    return register_and_login(client, "shopper", email="shopper@example.com")


@pytest.fixture
def product_id(client, admin):
    category = client.post("/categories", json={"name": "Peripherals"}, headers=admin).json()
    resp = client.post(
        "/products",
        json={
            "name": "Keyboard",
            "description": "Mechanical keyboard, brown switches",
            "price": "19.99",
            "stock": 10,
            "categoryId": category["id"],
            "image": "data:image/png;base64,AAAA",
        },
        headers=admin,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def fill_cart(client, headers, product_id, quantity=2):
    resp = client.post("/cart", json={"productId": product_id, "quantity": quantity}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestAuth:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_wrong_password(self, client, shopper):
        resp = client.post("/auth/login", json={"username": "shopper", "password": "nope123"})
        assert resp.status_code == 401

    def test_duplicate_username(self, client, shopper):
        resp = client.post("/auth/register", json={"username": "shopper", "password": "secret123"})
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Username already exists"}

    @pytest.mark.parametrize("body", [
        {"username": "te", "password": "secret123"},
        {"username": "tester", "password": "pass"},
        {"username": "tester"},
    ])
    def test_malformed_registration(self, client, body):
        resp = client.post("/auth/register", json=body)

        assert resp.status_code == 400
        assert isinstance(resp.json()["detail"], list)
        login = client.post("/auth/login", json={"username": "tester", "password": "secret123"})
        assert login.status_code == 401

    def test_missing_and_bad_token(self, client):
        assert client.post("/checkout", json=CHECKOUT).status_code == 401
        bad = {"Authorization": "Bearer not-a-jwt"}
        assert client.get("/cart", headers=bad).status_code == 401

    def test_admin_routes_reject_users(self, client, shopper):
        resp = client.post("/categories", json={"name": "Sneaky"}, headers=shopper)
        assert resp.status_code == 403


class TestCatalog:

    def test_product_created_with_uploaded_image(self, client, product_id, image_client, publisher):
        product = client.get(f"/products/{product_id}").json()

        assert product["image_url"] == "https://images.test/1.png"
        assert image_client.uploads == ["data:image/png;base64,AAAA"]
        assert publisher.topics() == ["new-category", "new-product"]

    def test_product_responses_embed_category(self, client, admin, product_id, publisher):
        listed = client.get("/products").json()[0]
        assert listed["category"]["name"] == "Peripherals"
        assert publisher.events[-1][1]["category"]["name"] == "Peripherals"

        other = client.post("/categories", json={"name": "Displays"}, headers=admin).json()
        current = client.get(f"/products/{product_id}").json()
        resp = client.put(
            f"/products/{product_id}",
            json={**{k: current[k] for k in ("name", "description", "price", "stock")}, "categoryId": other["id"]},
            headers=admin,
        )

        assert resp.status_code == 200, resp.text
        assert (resp.json()["category"]["id"], resp.json()["category"]["name"]) == (other["id"], "Displays")

    def test_list_filters_by_category(self, client, admin, product_id):
        other = client.post("/categories", json={"name": "Displays"}, headers=admin).json()

        assert len(client.get("/products").json()) == 1
        assert client.get("/products", params={"category_id": other["id"]}).json() == []

    def test_delete_product(self, client, admin, product_id, publisher):
        assert client.delete(f"/products/{product_id}", headers=admin).status_code == 204
        assert client.get(f"/products/{product_id}").status_code == 404
        assert publisher.events[-1] == ("delete-product", {"id": product_id})


class TestCart:

    def test_add_update_remove(self, client, shopper, product_id):
        cart = fill_cart(client, shopper, product_id)
        item_id = cart["items"][0]["id"]
        assert Decimal(cart["total"]) == Decimal("39.98")

        cart = client.put(f"/cart/{item_id}", json={"quantity": 3}, headers=shopper).json()
        assert cart["items"][0]["quantity"] == 3

        assert client.delete(f"/cart/{item_id}", headers=shopper).status_code == 200
        assert client.get("/cart", headers=shopper).json()["items"] == []

    def test_add_beyond_stock(self, client, shopper, product_id):
        resp = client.post("/cart", json={"productId": product_id, "quantity": 11}, headers=shopper)
        assert resp.status_code == 400


class TestCheckout:

    def test_successful_checkout(self, client, shopper, product_id, notifier):
        fill_cart(client, shopper, product_id)

        resp = client.post("/checkout", json=CHECKOUT, headers=shopper)

        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["payment_status"] == "COMPLETED"
        assert body["order"]["status"] == "PROCESSING"
        assert Decimal(body["order"]["total"]) == Decimal("39.98")
        assert [(i["product_id"], i["quantity"]) for i in body["order_items"]] == [(product_id, 2)]
        assert client.get("/cart", headers=shopper).json()["items"] == []
        assert client.get(f"/products/{product_id}").json()["stock"] == 8
        assert notifier.sent == [(body["order"]["id"], "shopper@example.com")]

    def test_empty_cart(self, client, shopper):
        resp = client.post("/checkout", json=CHECKOUT, headers=shopper)
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Cart is empty"}

    def test_invalid_payment_method(self, client, shopper, product_id):
        fill_cart(client, shopper, product_id)
        resp = client.post(
            "/checkout",
            json={"shippingAddress": "1 Test Street", "paymentMethod": "BITCOIN"},
            headers=shopper,
        )

        assert resp.status_code == 400
        assert client.get("/orders", headers=shopper).json() == []
        assert len(client.get("/cart", headers=shopper).json()["items"]) == 1
        assert client.get(f"/products/{product_id}").json()["stock"] == 10

    def test_unreachable_gateway_returns_202(self, client, shopper, product_id, payment):
        payment.outcome = PaymentGatewayUnavailable()
        fill_cart(client, shopper, product_id)

        resp = client.post("/checkout", json=CHECKOUT, headers=shopper)

        assert resp.status_code == 202
        assert resp.json()["order"]["status"] == "PENDING"

    def test_second_checkout_while_pending_conflicts(self, client, shopper, product_id, payment):
        payment.outcome = PaymentOutcome.PENDING
        fill_cart(client, shopper, product_id)
        mpesa = {**CHECKOUT, "paymentMethod": "MPESA"}

        assert client.post("/checkout", json=mpesa, headers=shopper).status_code == 200
        assert client.post("/checkout", json=mpesa, headers=shopper).status_code == 409

    def test_order_visible_to_owner_only(self, client, shopper, product_id):
        fill_cart(client, shopper, product_id)
        order_id = client.post("/checkout", json=CHECKOUT, headers=shopper).json()["order"]["id"]
        stranger = register_and_login(client, "stranger")

        assert client.get(f"/checkout/{order_id}", headers=shopper).status_code == 200
        assert client.get(f"/checkout/{order_id}", headers=stranger).status_code == 404
        assert client.get("/checkout/9999", headers=shopper).status_code == 404

    def test_payment_callback(self, client, shopper, product_id, payment):
        payment.outcome = PaymentOutcome.PENDING
        fill_cart(client, shopper, product_id)
        order_id = client.post(
            "/checkout", json={**CHECKOUT, "paymentMethod": "MPESA"}, headers=shopper
        ).json()["order"]["id"]
        url = f"/checkout/{order_id}/payment-callback"

        denied = client.post(url, json={"status": "COMPLETED"}, headers={"X-Payment-Token": "wrong"})
        assert denied.status_code == 401
        # header values arrive latin-1 decoded, so non-ASCII tokens are possible
        odd = client.post(url, json={"status": "COMPLETED"}, headers={"X-Payment-Token": "tök€n".encode("utf-8")})
        assert odd.status_code == 401
        missing = client.post(url, json={"status": "COMPLETED"})
        assert missing.status_code == 401

        resp = client.post(
            url,
            json={"status": "COMPLETED", "reference": "MP123"},
            headers={"X-Payment-Token": PAYMENT_CALLBACK_SECRET},
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "PROCESSING"
        assert client.get("/cart", headers=shopper).json()["items"] == []


class TestOrdersAndReviews:

    def test_review_requires_delivered_order(self, client, admin, shopper, product_id):
        review = {"rating": 5, "comment": "Great keys"}
        assert client.post(f"/products/{product_id}/reviews", json=review, headers=shopper).status_code == 403

        fill_cart(client, shopper, product_id, quantity=1)
        order_id = client.post("/checkout", json=CHECKOUT, headers=shopper).json()["order"]["id"]

        resp = client.patch(f"/orders/{order_id}/status", json={"status": "DELIVERED"}, headers=admin)
        assert resp.status_code == 200
        assert resp.json()["status"] == "DELIVERED"

        resp = client.post(f"/products/{product_id}/reviews", json=review, headers=shopper)
        assert resp.status_code == 201
        assert resp.json()["username"] == "shopper"

        again = client.post(f"/products/{product_id}/reviews", json={"rating": 4}, headers=shopper)
        assert again.status_code == 200

        page = client.get(f"/products/{product_id}/reviews").json()
        assert page["total"] == 1
        assert page["reviews"][0]["rating"] == 4

    def test_backwards_transition_conflicts(self, client, admin, shopper, product_id):
        fill_cart(client, shopper, product_id, quantity=1)
        order_id = client.post("/checkout", json=CHECKOUT, headers=shopper).json()["order"]["id"]

        resp = client.patch(f"/orders/{order_id}/status", json={"status": "PENDING"}, headers=admin)
        assert resp.status_code == 409

    def test_users_list_their_own_orders(self, client, admin, shopper, product_id):
        fill_cart(client, shopper, product_id, quantity=1)
        client.post("/checkout", json=CHECKOUT, headers=shopper)

        assert len(client.get("/orders", headers=shopper).json()) == 1
        assert len(client.get("/orders", headers=admin).json()) == 1
        other = register_and_login(client, "other")
        assert client.get("/orders", headers=other).json() == []

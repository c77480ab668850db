"""REST API tests."""

import pytest
from fastapi.testclient import TestClient

from pos_server import http_server

from conftest import run


@pytest.fixture
def api(terminal, monkeypatch):
    monkeypatch.setattr(http_server, "terminal", terminal)
    run(terminal.reload_catalog())
    # No context manager: the lifespan would build a terminal from the environment
    return TestClient(http_server.app)


def test_uninitialized_terminal(monkeypatch):
    monkeypatch.setattr(http_server, "terminal", None)

    response = TestClient(http_server.app).get("/cart")

    assert response.status_code == 503


def test_health(api):
    data = api.get("/health").json()

    assert data["backend"] == "ok"
    assert data["authenticated"] is False


def test_login(api):
    response = api.post("/auth/login", json={"username": "maria", "password": "secret"})

    assert response.status_code == 200
    assert response.json()["user"]["name"] == "Maria"


def test_bad_login_is_bad_gateway(api):
    response = api.post("/auth/login", json={"username": "maria", "password": "wrong"})

    assert response.status_code == 502


def test_products_filter(api):
    data = api.get("/products", params={"category": "Snacks"}).json()

    assert data["count"] == 1
    assert data["products"][0]["name"] == "Potato Chips"


def test_sale_flow(api, backend):
    api.post("/cart/add", json={"product_id": "1"})
    api.post("/cart/add", json={"product_id": "1"})
    cart = api.post("/cart/quantity", json={"product_id": "1", "delta": 1}).json()
    assert cart["total"] == "180"

    opened = api.post("/checkout").json()
    assert opened["state"] == "payment_open"
    assert opened["payment_methods"] == ["Cash", "Card"]

    paid = api.post("/checkout/pay", json={"payment_method": "Cash", "cash_received": "200"})
    assert paid.status_code == 200
    receipt = paid.json()["receipt"]
    assert receipt["receipt_number"] == "RCP-101"
    assert receipt["change"] == "20"
    assert paid.json()["state"] == "receipt_open"

    assert api.get("/cart").json()["item_count"] == 0
    assert api.post("/checkout/receipt/close").json()["state"] == "idle"
    assert api.get("/sales").json()["count"] == 1


def test_validation_errors(api):
    assert api.post("/checkout").status_code == 400
    assert api.post("/cart/add", json={"product_id": "3"}).status_code == 400
    assert api.post("/checkout/pay", json={"payment_method": "Card"}).status_code == 409


def test_failed_submission_is_bad_gateway(api, backend):
    api.post("/cart/add", json={"product_id": "2"})
    api.post("/checkout")
    backend.fail("/api/transactions")

    response = api.post("/checkout/pay", json={"payment_method": "Card"})

    assert response.status_code == 502
    assert api.get("/cart").json()["checkout_state"] == "payment_open"
    assert api.get("/cart").json()["item_count"] == 1


def test_duplicate_category_conflict(api):
    response = api.post("/categories", data={"name": "pet supplies"})

    assert response.status_code == 409


def test_categories(api):
    names = [card["name"] for card in api.get("/categories").json()["categories"]]

    assert "Dairy" in names
    assert "Pet Supplies" in names


def test_create_category_with_image(api, backend):
    response = api.post(
        "/categories",
        data={"name": "Frozen"},
        files={"image": ("frozen.png", b"\x89PNG", "image/png")},
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Frozen"
    sent = backend.recorded("POST", "/api/add_category")[0]
    assert b'filename="frozen.png"' in sent.content
    assert b"\x89PNG" in sent.content


def test_create_category_without_image(api, backend):
    response = api.post("/categories", data={"name": "Frozen"})

    assert response.status_code == 200
    assert b"filename=" not in backend.recorded("POST", "/api/add_category")[0].content


def test_stock_movements(api):
    response = api.post(
        "/inventory",
        json={"product_id": "2", "change_type": "Purchase", "quantity_change": 6},
    )

    assert response.json() == {"success": True, "stock": 16}
    logs = api.get("/inventory").json()
    assert logs["count"] == 1
    assert logs["logs"][0]["change_type"] == "Purchase"


def test_invalid_stock_movement(api):
    response = api.post(
        "/inventory",
        json={"product_id": "2", "change_type": "Gift", "quantity_change": 1},
    )

    assert response.status_code == 400


def test_signup(api, backend):
    body = {"username": "lee", "email": "lee@shop.test", "password": "pw", "name": "Lee"}

    assert api.post("/auth/signup", json=body).json()["success"] is True
    assert api.post("/auth/signup", json=body).status_code == 502
    assert api.post("/auth/signup", json={**body, "role": "owner"}).status_code == 422


def test_initialize_demo_data(api, backend):
    response = api.post("/system/initialize")

    assert response.json()["message"] == "Demo data initialized"
    assert backend.initialized

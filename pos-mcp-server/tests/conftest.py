"""
Shared fixtures for the POS terminal tests.

The backend is replaced by FakeBackend, an httpx.MockTransport handler that
serves products, categories and transactions from memory and records every
request it receives.
"""

import asyncio
import json
from decimal import Decimal
from typing import Any

import httpx
import pytest

from pos_server.auth import AuthManager, MemorySessionStore
from pos_server.cart import Cart
from pos_server.catalog import Catalog
from pos_server.config import Settings
from pos_server.models import Product
from pos_server.pos_client import PosBackendClient
from pos_server.terminal import PosTerminal

API_BASE = "http://backend.test"


def run(coro):
    return asyncio.run(coro)


def make_product(
    id: str = "1",
    name: str = "Milk",
    price: Any = "60",
    stock: int = 3,
    min_stock: int = 1,
    category: str = "Dairy",
    barcode: str = "",
) -> Product:
    return Product(
        id=id,
        name=name,
        price=Decimal(str(price)),
        stock=stock,
        min_stock=min_stock,
        category=category,
        barcode=barcode,
    )


class FakeBackend:
    """In-memory stand-in for the POS backend HTTP API."""

    def __init__(self) -> None:
        self.products: list[dict] = [
            {
                "product_id": 1,
                "product_name": "Milk",
                "category_name": "Dairy",
                "price": 60,
                "stock_quantity": 3,
                "min_stock": 1,
                "unit": "pcs",
                "barcode": "4800001",
            },
            {
                "product_id": 2,
                "product_name": "Potato Chips",
                "category_name": "Snacks",
                "price": 35.5,
                "stock_quantity": 10,
                "unit": "pcs",
                "barcode": "4800002",
            },
            {
                "product_id": 3,
                "product_name": "Soap",
                "category_name": None,
                "price": 25,
                "stock_quantity": 0,
                "unit": "pcs",
            },
        ]
        self.categories: list[dict] = [
            {"category_id": 10, "category_name": "dairy", "image_path": None},
            {"category_id": 11, "category_name": "Pet Supplies", "image_path": "pets.png"},
        ]
        self.transactions: list[dict] = []
        self.inventory: list[dict] = []
        self.users: list[dict] = []
        self.initialized = False
        self.requests: list[httpx.Request] = []
        self.fail_paths: dict[str, int] = {}
        self.next_transaction_id = 101

    def fail(self, path: str, status_code: int = 500) -> None:
        self.fail_paths[path] = status_code

    def recorded(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        method = request.method

        if path in self.fail_paths:
            return httpx.Response(self.fail_paths[path], json={"error": f"{path} is broken"})

        if method == "GET" and path == "/products":
            return httpx.Response(200, json=self.products)
        if method == "GET" and path == "/categories":
            return httpx.Response(200, json=self.categories)
        if method == "POST" and path == "/api/add_category":
            category_id = 100 + len(self.categories)
            self.categories.append({"category_id": category_id, "category_name": "new"})
            return httpx.Response(201, json={"category_id": category_id, "image_path": None})
        if method == "DELETE" and path.startswith("/api/categories/"):
            return httpx.Response(204)
        if method == "POST" and path == "/products":
            return httpx.Response(201, json={"message": "created"})
        if method == "PUT" and path.startswith("/api/update_product/"):
            return httpx.Response(200, json={"message": "updated"})
        if method == "POST" and path == "/api/transactions":
            payload = json.loads(request.content)
            transaction_id = self.next_transaction_id
            self.next_transaction_id += 1
            self.transactions.append({
                "transaction_id": transaction_id,
                "date_time": "2026-10-19T09:30:00",
                **payload,
            })
            return httpx.Response(
                201,
                json={"transaction_id": transaction_id, "date_time": "2026-10-19T09:30:00"},
            )
        if method == "GET" and path == "/api/transactions":
            return httpx.Response(200, json=self.transactions)
        if method == "GET" and path == "/inventory":
            return httpx.Response(200, json=self.inventory)
        if method == "POST" and path == "/inventory":
            payload = json.loads(request.content)
            name = None
            for product in self.products:
                if product["product_id"] == payload["product_id"]:
                    product["stock_quantity"] += payload["quantity_change"]
                    name = product["product_name"]
            self.inventory.append({
                "log_id": len(self.inventory) + 1,
                "product_name": name,
                "date_time": "2026-10-19T10:00:00",
                **payload,
            })
            return httpx.Response(201, json={"message": "logged"})
        if method == "POST" and path == "/api/signup":
            body = json.loads(request.content)
            if any(u["username"] == body["username"] for u in self.users):
                return httpx.Response(409, json={"error": "Username already exists"})
            self.users.append(body)
            return httpx.Response(201, json={"message": "User created", "user_id": len(self.users)})
        if method == "POST" and path == "/initialize":
            self.initialized = True
            return httpx.Response(200, json={"message": "Demo data initialized"})
        if method == "POST" and path == "/api/login":
            body = json.loads(request.content)
            if body.get("password") != "secret":
                return httpx.Response(401, json={"error": "Invalid credentials"})
            return httpx.Response(
                200,
                json={
                    "accessToken": "token-123",
                    "user": {"id": 7, "username": body["username"], "name": "Maria", "role": "cashier"},
                },
            )
        if method == "GET" and path == "/auth/verify":
            ok = request.headers.get("Authorization") == "Bearer token-123"
            return httpx.Response(200 if ok else 401, json={"success": ok})
        if method == "GET" and path == "/health":
            return httpx.Response(200, json={"status": "ok"})

        return httpx.Response(404, json={"error": "Not found"})


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def transport(backend: FakeBackend) -> httpx.MockTransport:
    return httpx.MockTransport(backend.handler)


@pytest.fixture
def auth_manager() -> AuthManager:
    return AuthManager(MemorySessionStore())


@pytest.fixture
def client(auth_manager: AuthManager, transport: httpx.MockTransport) -> PosBackendClient:
    return PosBackendClient(auth_manager, base_url=API_BASE, transport=transport)


@pytest.fixture
def milk() -> Product:
    return make_product()


@pytest.fixture
def catalog(milk: Product) -> Catalog:
    return Catalog(
        products=[
            milk,
            make_product(id="2", name="Bread", price="45.50", stock=5, category="Bakery"),
            make_product(id="3", name="Soap", price="25", stock=0, category="Personal Care"),
        ]
    )


@pytest.fixture
def cart(catalog: Catalog) -> Cart:
    return Cart(catalog.get_product)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        api_base=API_BASE,
        cashier_name="Front Desk",
        session_file=str(tmp_path / "session.json"),
        checkout_timeout=2.0,
    )


@pytest.fixture
def terminal(settings: Settings, transport: httpx.MockTransport) -> PosTerminal:
    return PosTerminal(settings, store=MemorySessionStore(), transport=transport)


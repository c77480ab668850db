"""Backend API client for the point-of-sale terminal."""

import logging
from decimal import Decimal
from typing import Any, Iterable, Optional, Union

import httpx
from pydantic import ValidationError

from .auth import AuthManager
from .config import DEFAULT_API_BASE
from .errors import BackendError
from .models import (
    AuthCredentials,
    CartLine,
    Category,
    InventoryLog,
    MovementType,
    Product,
    SaleRecord,
    TransactionResult,
    User,
)

logger = logging.getLogger(__name__)

# Product field name -> backend column
PRODUCT_FIELDS = {
    "name": "product_name",
    "price": "price",
    "stock": "stock_quantity",
    "category": "category_name",
    "min_stock": "min_stock",
    "barcode": "barcode",
    "unit": "unit",
}


def wire_id(value: Union[int, str]) -> Union[int, str]:
    """Backend ids are integers; keep anything else as-is."""
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


class PosBackendClient:
    """Async client for the POS backend HTTP API."""

    def __init__(
        self,
        auth_manager: AuthManager,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the backend client.

        Args:
            auth_manager: Session context supplying the bearer token
            base_url: Backend base URL
            timeout: Per-request timeout in seconds
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.auth_manager = auth_manager
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request and turn every failure into BackendError.

        Raises:
            BackendError: On network errors and non-success responses
        """
        headers = self.auth_manager.get_headers()
        headers.update(kwargs.pop("headers", {}))
        try:
            response = await self.client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise BackendError(f"Backend unavailable: {e}") from e

        if response.is_success:
            return response

        message = f"{method} {path} returned HTTP {response.status_code}"
        try:
            data = response.json()
            if isinstance(data, dict) and data.get("error"):
                message = str(data["error"])
        except ValueError:
            pass
        logger.error(f"{method} {path} failed: {message}")
        raise BackendError(message, status_code=response.status_code)

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._request(method, path, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"{method} {path} returned invalid JSON") from e

    # Auth

    async def login(self, credentials: AuthCredentials) -> User:
        """
        Authenticate and store the access token in the session.

        Returns:
            The signed-in user
        """
        logger.info(f"Logging in as {credentials.username}")
        data = await self._json(
            "POST",
            "/api/login",
            json={"username": credentials.username, "password": credentials.password},
        )
        data = data or {}
        user = User(**(data.get("user") or {"username": credentials.username}))
        self.auth_manager.save_session(data.get("accessToken"), user)
        return user

    async def verify(self) -> bool:
        """Check the stored token; clear the session if the backend rejects it."""
        if not self.auth_manager.get_access_token():
            return False
        try:
            data = await self._json("GET", "/auth/verify")
        except BackendError:
            self.auth_manager.clear_session()
            return False
        return bool((data or {}).get("success"))

    async def signup(
        self, username: str, email: str, password: str, role: str, name: str
    ) -> dict[str, Any]:
        """Register a backend user (role is 'admin' or 'cashier')."""
        logger.info(f"Signing up {username} as {role}")
        return await self._json(
            "POST",
            "/api/signup",
            json={
                "username": username,
                "email": email,
                "password": password,
                "role": role,
                "name": name,
            },
        ) or {}

    def logout(self) -> None:
        self.auth_manager.clear_session()

    async def initialize_demo_data(self) -> dict[str, Any]:
        logger.info("Initializing backend demo data")
        return await self._json("POST", "/initialize") or {}

    async def health_check(self) -> dict[str, Any]:
        try:
            return await self._json("GET", "/health") or {}
        except BackendError:
            return {"status": "error"}

    # Catalog

    async def get_products(self) -> list[Product]:
        rows = await self._json("GET", "/products") or []
        products = []
        for row in rows:
            try:
                products.append(Product.from_backend(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed product row {row!r}: {e}")
        return products

    async def get_categories(self) -> list[Category]:
        rows = await self._json("GET", "/categories") or []
        categories = []
        for row in rows:
            try:
                categories.append(Category.from_backend(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed category row {row!r}: {e}")
        return categories

    async def create_category(
        self, name: str, image: Optional[tuple[str, bytes]] = None
    ) -> Category:
        """
        Create a category, optionally uploading an image.

        Args:
            name: Category name
            image: Optional (filename, content) pair
        """
        files = {"image": image} if image else None
        data = await self._json("POST", "/api/add_category", data={"name": name}, files=files)
        data = data or {}
        return Category(id=data["category_id"], name=name, image_path=data.get("image_path"))

    async def delete_category(self, category_id: Union[int, str]) -> None:
        await self._request("DELETE", f"/api/categories/{category_id}")

    async def create_product(self, product: Product, created_by: Optional[str] = None) -> Any:
        body = {
            column: _json_value(getattr(product, field))
            for field, column in PRODUCT_FIELDS.items()
        }
        body["created_by"] = created_by or "Unknown"
        return await self._json("POST", "/products", json=body)

    async def update_product(self, product_id: str, updates: dict[str, Any]) -> Any:
        """
        Partially update a product.

        Args:
            product_id: Product ID
            updates: Product field names (name, price, stock, ...) to new values
        """
        body = {
            PRODUCT_FIELDS[field]: _json_value(value)
            for field, value in updates.items()
            if field in PRODUCT_FIELDS
        }
        return await self._json("PUT", f"/api/update_product/{product_id}", json=body)

    # Sales

    async def create_transaction(
        self,
        cashier: str,
        payment_method: str,
        total: Decimal,
        items: Iterable[CartLine],
        user_id: Optional[Union[int, str]] = None,
    ) -> TransactionResult:
        """
        Submit a completed sale.

        Returns:
            The backend-assigned transaction id (and timestamp, when sent)
        """
        payload: dict[str, Any] = {
            "cashier": cashier,
            "payment_method": payment_method,
            "total_amount": _json_value(total),
            "items": [
                {
                    "product_id": wire_id(line.product_id),
                    "quantity": line.quantity,
                    "price": _json_value(line.price),
                }
                for line in items
            ],
        }
        if user_id is not None:
            payload["user_id"] = user_id

        data = await self._json("POST", "/api/transactions", json=payload)
        if not isinstance(data, dict) or "transaction_id" not in data:
            raise BackendError("Transaction response has no transaction_id")
        try:
            result = TransactionResult(**data)
        except ValidationError as e:
            raise BackendError(f"Invalid transaction response: {e}") from e
        logger.info(f"Transaction {result.transaction_id} recorded")
        return result

    async def get_transactions(self) -> list[SaleRecord]:
        rows = await self._json("GET", "/api/transactions") or []
        sales = []
        for row in rows:
            try:
                sales.append(SaleRecord.from_backend(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed transaction row: {e}")
        return sales

    # Inventory

    async def get_inventory_logs(self) -> list[InventoryLog]:
        rows = await self._json("GET", "/inventory") or []
        logs = []
        for row in rows:
            try:
                logs.append(InventoryLog.from_backend(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed inventory row {row!r}: {e}")
        return logs

    async def add_inventory_log(
        self,
        product_id: Union[int, str],
        change_type: MovementType,
        quantity_change: int,
        remarks: str = "",
    ) -> Any:
        """
        Record a manual stock movement.

        Args:
            product_id: Product ID
            change_type: Kind of movement
            quantity_change: Signed stock change
            remarks: Free-text note
        """
        return await self._json(
            "POST",
            "/inventory",
            json={
                "product_id": wire_id(product_id),
                "change_type": MovementType(change_type).value,
                "quantity_change": quantity_change,
                "remarks": remarks,
            },
        )

"""HTTP server exposing the POS terminal as a REST API."""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Literal, Optional, Union

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from pydantic import BaseModel

from .config import Settings
from .errors import (
    BackendError,
    CheckoutStateError,
    DuplicateBarcodeError,
    DuplicateCategoryError,
    PosError,
)
from .models import Product
from .terminal import PosTerminal

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("pos-http-server")

# Global state
terminal: Optional[PosTerminal] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    global terminal

    # Startup
    logger.info("Starting POS HTTP Server...")
    terminal = PosTerminal(Settings.from_env())
    try:
        await terminal.reload_catalog()
    except BackendError as e:
        logger.error(f"Catalog not loaded: {e}")

    yield

    # Shutdown
    logger.info("Shutting down POS HTTP Server...")
    await terminal.aclose()


app = FastAPI(
    title="POS MCP Server",
    description="HTTP API for the point-of-sale terminal",
    version="0.1.0",
    lifespan=lifespan,
)


# Request/Response Models
class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ProductRequest(BaseModel):
    product_id: str


class QuantityRequest(BaseModel):
    product_id: str
    delta: int


class PaymentRequest(BaseModel):
    payment_method: str
    cash_received: Optional[Decimal] = None


class SignupRequest(BaseModel):
    username: str
    email: str
    password: str
    role: Literal["admin", "cashier"] = "cashier"
    name: str


class StockMovementRequest(BaseModel):
    product_id: str
    change_type: str
    quantity_change: int
    remarks: str = ""


class ProductCreateRequest(BaseModel):
    name: str
    category: str = "Uncategorized"
    price: Decimal
    stock: int = 0
    min_stock: int = 1
    barcode: str = ""
    unit: str = "pcs"


class ProductUpdateRequest(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[Decimal] = None
    stock: Optional[int] = None
    min_stock: Optional[int] = None
    barcode: Optional[str] = None


def _terminal() -> PosTerminal:
    if terminal is None:
        raise HTTPException(status_code=503, detail="Terminal not initialized")
    return terminal


def _error(e: PosError) -> HTTPException:
    if isinstance(e, BackendError):
        return HTTPException(status_code=502, detail=str(e))
    if isinstance(e, (CheckoutStateError, DuplicateBarcodeError, DuplicateCategoryError)):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "POS MCP Server",
        "version": "0.1.0",
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "auth": {
                "login": "POST /auth/login",
                "signup": "POST /auth/signup",
                "logout": "POST /auth/logout",
            },
            "catalog": {
                "reload": "POST /catalog/reload",
                "products": "GET /products",
                "categories": "GET /categories",
            },
            "cart": {
                "get": "GET /cart",
                "add": "POST /cart/add",
                "quantity": "POST /cart/quantity",
                "remove": "POST /cart/remove",
                "clear": "POST /cart/clear",
            },
            "checkout": {
                "start": "POST /checkout",
                "cancel": "POST /checkout/cancel",
                "pay": "POST /checkout/pay",
                "close_receipt": "POST /checkout/receipt/close",
            },
            "sales": "GET /sales",
            "inventory": {"list": "GET /inventory", "record": "POST /inventory"},
            "initialize": "POST /system/initialize",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    pos = _terminal()
    backend = await pos.client.health_check()
    return {
        "status": "healthy",
        "backend": backend.get("status", "unknown"),
        "authenticated": pos.auth_manager.is_authenticated(),
    }


# Authentication endpoints
@app.post("/auth/login")
async def login(request: LoginRequest):
    pos = _terminal()
    try:
        user = await pos.login(request.username, request.password)
        return {"success": True, "user": user.model_dump()}
    except PosError as e:
        raise _error(e)


@app.post("/auth/signup")
async def signup(request: SignupRequest):
    pos = _terminal()
    try:
        result = await pos.client.signup(
            request.username, request.email, request.password, request.role, request.name
        )
    except PosError as e:
        raise _error(e)
    return {"success": True, **result}


@app.post("/auth/logout")
async def logout():
    _terminal().logout()
    return {"success": True}


# Catalog endpoints
@app.post("/catalog/reload")
async def reload_catalog():
    pos = _terminal()
    try:
        await pos.reload_catalog()
    except PosError as e:
        raise _error(e)
    return {"products": len(pos.catalog.products), "categories": len(pos.catalog.categories)}


@app.get("/products")
async def list_products(query: str = "", category: Optional[str] = None):
    """Products matching a search term and optional category."""
    products = _terminal().catalog.search(query, category)
    return {
        "count": len(products),
        "products": [product.model_dump(mode="json") for product in products],
    }


@app.post("/products")
async def create_product(request: ProductCreateRequest):
    pos = _terminal()
    product = Product(id="new", **request.model_dump())
    try:
        await pos.catalog.add_product(pos.client, product, created_by=pos.cashier_name)
    except PosError as e:
        raise _error(e)
    return {"success": True}


@app.put("/products/{product_id}")
async def update_product(product_id: str, request: ProductUpdateRequest):
    pos = _terminal()
    try:
        await pos.catalog.update_product(pos.client, product_id, request.model_dump(exclude_none=True))
    except PosError as e:
        raise _error(e)
    return {"success": True}


@app.get("/categories")
async def list_categories():
    return {"categories": _terminal().category_cards()}


@app.post("/categories")
async def create_category(name: str = Form(...), image: Optional[UploadFile] = File(None)):
    """Create a category from a multipart form with an optional image file."""
    pos = _terminal()
    upload = None
    if image is not None and image.filename:
        upload = (image.filename, await image.read())
    try:
        category = await pos.catalog.add_category(pos.client, name, upload)
    except PosError as e:
        raise _error(e)
    return category.model_dump()


@app.delete("/categories/{category_id}")
async def delete_category(category_id: Union[int, str]):
    pos = _terminal()
    try:
        await pos.catalog.delete_category(pos.client, category_id)
    except PosError as e:
        raise _error(e)
    return {"success": True}


# Cart endpoints
@app.get("/cart")
async def get_cart():
    return _terminal().cart_summary()


@app.post("/cart/add")
async def add_to_cart(request: ProductRequest):
    pos = _terminal()
    try:
        pos.add_to_cart(request.product_id)
    except PosError as e:
        raise _error(e)
    return pos.cart_summary()


@app.post("/cart/quantity")
async def update_quantity(request: QuantityRequest):
    pos = _terminal()
    try:
        pos.cart.update_quantity(request.product_id, request.delta)
    except PosError as e:
        raise _error(e)
    return pos.cart_summary()


@app.post("/cart/remove")
async def remove_from_cart(request: ProductRequest):
    pos = _terminal()
    pos.cart.remove_from_cart(request.product_id)
    return pos.cart_summary()


@app.post("/cart/clear")
async def clear_cart():
    pos = _terminal()
    pos.cart.clear_cart()
    return pos.cart_summary()


# Checkout endpoints
@app.post("/checkout")
async def checkout():
    pos = _terminal()
    try:
        pos.checkout.request_checkout()
    except PosError as e:
        raise _error(e)
    return {
        "state": pos.checkout.state.value,
        "total": str(pos.cart.total()),
        "payment_methods": pos.checkout.payment_methods,
    }


@app.post("/checkout/cancel")
async def cancel_payment():
    pos = _terminal()
    pos.checkout.cancel_payment()
    return {"state": pos.checkout.state.value}


@app.post("/checkout/pay")
async def pay(request: PaymentRequest):
    pos = _terminal()
    try:
        details = pos.checkout.payment_for_cart(request.payment_method, request.cash_received)
        receipt = await pos.checkout.complete_payment(details)
    except PosError as e:
        raise _error(e)
    if receipt is None:
        raise HTTPException(status_code=409, detail="Nothing to pay for, or a payment is in progress")
    return {"state": pos.checkout.state.value, "receipt": receipt.model_dump(mode="json")}


@app.post("/checkout/receipt/close")
async def close_receipt():
    pos = _terminal()
    pos.checkout.close_receipt()
    return {"state": pos.checkout.state.value}


@app.get("/sales")
async def sales_history() -> dict[str, Any]:
    pos = _terminal()
    try:
        sales = await pos.client.get_transactions()
    except PosError as e:
        raise _error(e)
    return {"count": len(sales), "sales": [sale.model_dump(mode="json") for sale in sales]}


# Inventory endpoints
@app.get("/inventory")
async def inventory_logs():
    pos = _terminal()
    try:
        logs = await pos.client.get_inventory_logs()
    except PosError as e:
        raise _error(e)
    return {"count": len(logs), "logs": [log.model_dump(mode="json") for log in logs]}


@app.post("/inventory")
async def record_stock_movement(request: StockMovementRequest):
    pos = _terminal()
    try:
        await pos.catalog.record_stock_movement(
            pos.client,
            request.product_id,
            request.change_type,
            request.quantity_change,
            request.remarks,
        )
    except PosError as e:
        raise _error(e)
    product = pos.catalog.get_product(request.product_id)
    return {"success": True, "stock": product.stock if product is not None else None}


@app.post("/system/initialize")
async def initialize_demo_data():
    """Ask the backend to seed its demo data, then reload the catalog."""
    pos = _terminal()
    try:
        result = await pos.client.initialize_demo_data()
        await pos.reload_catalog()
    except PosError as e:
        raise _error(e)
    return result


def run_http_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the HTTP server."""
    import uvicorn
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    run_http_server()

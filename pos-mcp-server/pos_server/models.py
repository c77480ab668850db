"""Data models for the point-of-sale terminal."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    computed_field,
    field_validator,
)

from .errors import InvalidPaymentError

logger = logging.getLogger(__name__)

CASH = "Cash"
CARD = "Card"

_DATETIME = TypeAdapter(datetime)


def backend_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a backend timestamp.

    The backend stores UTC without an offset, so naive values are marked UTC.
    Unparseable values become None.
    """
    if value is None or value == "":
        return None
    try:
        parsed = _DATETIME.validate_python(value)
    except ValidationError:
        logger.warning(f"Ignoring unparseable backend timestamp {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Product(BaseModel):
    """Catalog product, a read-only snapshot of the backend row."""

    id: str = Field(description="Product ID")
    name: str = Field(description="Product name")
    category: str = Field(default="Uncategorized", description="Category name")
    price: Decimal = Field(default=Decimal("0"), ge=0, description="Unit price")
    stock: int = Field(default=0, ge=0, description="Units in stock")
    min_stock: int = Field(default=0, ge=0, description="Low-stock threshold")
    barcode: str = Field(default="", description="Barcode, may be empty")
    unit: str = Field(default="pcs", description="Unit of measure")
    image_path: Optional[str] = Field(None, description="Stored image filename")

    @classmethod
    def from_backend(cls, data: dict[str, Any]) -> "Product":
        """Build a product from a backend /products row."""
        return cls(
            id=str(data["product_id"]),
            name=data.get("product_name") or "",
            category=data.get("category_name") or "Uncategorized",
            price=Decimal(str(data.get("price") or 0)),
            stock=max(int(data.get("stock_quantity") or 0), 0),
            min_stock=max(int(data.get("min_stock") or 0), 0),
            barcode=data.get("barcode") or "",
            unit=data.get("unit") or "pcs",
            image_path=data.get("image_path"),
        )


class Category(BaseModel):
    """Product category from either the curated list or the backend."""

    id: Union[int, str]
    name: Optional[str] = None
    image_path: Optional[str] = None

    @classmethod
    def from_backend(cls, data: dict[str, Any]) -> "Category":
        return cls(
            id=data["category_id"],
            name=data.get("category_name"),
            image_path=data.get("image_path"),
        )


class CartLine(BaseModel):
    """One product's quantity and price snapshot within a cart."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    product_name: str
    price: Decimal
    quantity: int = Field(ge=1)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class PaymentDetails(BaseModel):
    """Payment-completion event handed to the checkout orchestrator."""

    model_config = ConfigDict(frozen=True)

    payment_method: str
    total: Decimal
    items: tuple[CartLine, ...] = ()
    cash_received: Optional[Decimal] = None
    change: Optional[Decimal] = None

    @classmethod
    def for_cart(
        cls,
        items: tuple[CartLine, ...],
        payment_method: str,
        cash_received: Optional[Decimal] = None,
    ) -> "PaymentDetails":
        """
        Build payment details from the cart lines as they are right now.

        Args:
            items: Frozen cart lines
            payment_method: Payment method name
            cash_received: Amount tendered (cash only)

        Raises:
            InvalidPaymentError: If cash tendered does not cover the total
        """
        total = sum((line.subtotal for line in items), Decimal("0"))
        if payment_method != CASH:
            return cls(payment_method=payment_method, total=total, items=items)

        if cash_received is None:
            cash_received = total
        cash_received = Decimal(str(cash_received))
        if cash_received < total:
            raise InvalidPaymentError(
                f"Cash received {cash_received} is less than the total {total}"
            )
        return cls(
            payment_method=payment_method,
            total=total,
            items=items,
            cash_received=cash_received,
            change=cash_received - total,
        )


class TransactionResult(BaseModel):
    """Backend reply to a submitted transaction."""

    transaction_id: Union[int, str]
    date_time: Optional[datetime] = None

    @field_validator("date_time", mode="before")
    @classmethod
    def _utc_date_time(cls, value: Any) -> Optional[datetime]:
        return backend_datetime(value)


class Receipt(BaseModel):
    """Immutable record of a completed sale."""

    model_config = ConfigDict(frozen=True)

    transaction_id: Union[int, str]
    receipt_number: str
    payment_method: str
    total: Decimal
    cashier_name: str
    timestamp: datetime
    items: tuple[CartLine, ...]
    cash_received: Optional[Decimal] = None
    change: Optional[Decimal] = None


class SaleItem(BaseModel):
    """Line of a past sale as returned by the history endpoint."""

    product_id: Union[int, str]
    product_name: Optional[str] = None
    quantity: int
    price: Decimal

    @computed_field  # type: ignore[prop-decorator]
    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class SaleRecord(BaseModel):
    """Past sale from the transactions history."""

    transaction_id: Union[int, str]
    receipt_number: str
    total: Decimal
    payment_method: str
    cashier_name: str
    timestamp: Optional[datetime] = None
    items: list[SaleItem] = Field(default_factory=list)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _utc_timestamp(cls, value: Any) -> Optional[datetime]:
        return backend_datetime(value)

    @classmethod
    def from_backend(cls, data: dict[str, Any]) -> "SaleRecord":
        transaction_id = data["transaction_id"]
        return cls(
            transaction_id=transaction_id,
            receipt_number=f"RCP-{transaction_id}",
            total=Decimal(str(data.get("total_amount") or 0)),
            payment_method=data.get("payment_method") or "",
            cashier_name=data.get("cashier") or "",
            timestamp=data.get("date_time"),
            items=[SaleItem(**item) for item in data.get("items") or []],
        )


class User(BaseModel):
    """Authenticated backend user."""

    id: Optional[Union[int, str]] = None
    username: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None


class AuthCredentials(BaseModel):
    """Login credentials."""

    username: str
    password: str


class SessionData(BaseModel):
    """Session data for the signed-in cashier."""

    access_token: Optional[str] = Field(None, description="Bearer token")
    user: Optional[User] = Field(None, description="Signed-in user")
    is_authenticated: bool = Field(default=False, description="Authentication status")


class MovementType(str, Enum):
    """Kinds of stock movement recorded in the inventory log."""

    INITIAL = "Initial"
    PURCHASE = "Purchase"
    SALE = "Sale"
    ADJUSTMENT = "Adjustment"
    RETURN = "Return"
    DAMAGE = "Damage"
    TRANSFER = "Transfer"


class InventoryLog(BaseModel):
    """One stock movement from the inventory log."""

    log_id: Union[int, str]
    product_id: Union[int, str]
    product_name: Optional[str] = None
    change_type: str = Field(description="MovementType value, or a backend-specific label")
    quantity_change: int
    remarks: str = ""
    timestamp: Optional[datetime] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _utc_timestamp(cls, value: Any) -> Optional[datetime]:
        return backend_datetime(value)

    @classmethod
    def from_backend(cls, data: dict[str, Any]) -> "InventoryLog":
        return cls(
            log_id=data["log_id"],
            product_id=data["product_id"],
            product_name=data.get("product_name"),
            change_type=data.get("change_type") or "",
            quantity_change=int(data.get("quantity_change") or 0),
            remarks=data.get("remarks") or "",
            timestamp=data.get("date_time"),
        )

"""Error types raised by the point-of-sale core."""

from typing import Optional


class PosError(Exception):
    """Base class for every user-visible terminal error."""


class PosValidationError(PosError):
    """Operation rejected before any state was changed."""


class EmptyCartError(PosValidationError):
    def __init__(self) -> None:
        super().__init__("Cart is empty!")


class OutOfStockError(PosValidationError):
    def __init__(self, product_name: str) -> None:
        self.product_name = product_name
        super().__init__(f"Product out of stock: {product_name}")


class InsufficientStockError(PosValidationError):
    def __init__(self, product_name: str, available: int) -> None:
        self.product_name = product_name
        self.available = available
        super().__init__(
            f"Not enough stock available for {product_name} (in stock: {available})"
        )


class DuplicateBarcodeError(PosValidationError):
    def __init__(self, barcode: str) -> None:
        self.barcode = barcode
        super().__init__(
            f"Barcode {barcode} already exists. Please use a different barcode."
        )


class DuplicateCategoryError(PosValidationError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Category already exists: {name}")


class InvalidPaymentError(PosValidationError):
    """Unknown payment method or insufficient cash tendered."""


class CheckoutStateError(PosError):
    """Checkout command issued in a state that does not accept it."""


class BackendError(PosError):
    """Backend request failed (network error or non-success response)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class CheckoutFailedError(BackendError):
    """Transaction submission failed or timed out; the cart is preserved."""

"""Checkout flow: payment capture, transaction submission and receipt."""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from .cart import Cart
from .errors import (
    BackendError,
    CheckoutFailedError,
    CheckoutStateError,
    EmptyCartError,
    InvalidPaymentError,
)
from .models import CASH, CARD, PaymentDetails, Receipt
from .pos_client import PosBackendClient

logger = logging.getLogger(__name__)


class CheckoutState(str, Enum):
    IDLE = "idle"
    PAYMENT_OPEN = "payment_open"
    SUBMITTING = "submitting"
    RECEIPT_OPEN = "receipt_open"


StateListener = Callable[[CheckoutState], None]


class CheckoutOrchestrator:
    """
    Sequences a sale from the cart to a recorded transaction.

    Idle -> PaymentOpen -> Submitting -> ReceiptOpen -> Idle. At most one
    submission is in flight; a failed submission returns to PaymentOpen with
    the cart untouched so the cashier can retry or cancel.
    """

    def __init__(
        self,
        cart: Cart,
        client: PosBackendClient,
        cashier_name: str,
        payment_methods: Iterable[str] = (CASH, CARD),
        timeout: float = 15.0,
        user_id: Optional[Union[int, str]] = None,
    ) -> None:
        self.cart = cart
        self.client = client
        self.cashier_name = cashier_name
        self.payment_methods = list(payment_methods)
        self.timeout = timeout
        self.user_id = user_id
        self._state = CheckoutState.IDLE
        self._last_receipt: Optional[Receipt] = None
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def last_receipt(self) -> Optional[Receipt]:
        return self._last_receipt

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _set_state(self, state: CheckoutState) -> None:
        if state == self._state:
            return
        logger.debug(f"Checkout {self._state.value} -> {state.value}")
        self._state = state
        for listener in self._listeners:
            listener(state)

    def request_checkout(self) -> None:
        """
        Open payment capture for the current cart.

        Raises:
            EmptyCartError: If the cart is empty
            CheckoutStateError: If a submission or receipt is in progress
        """
        if self._state == CheckoutState.PAYMENT_OPEN:
            return
        if self._state != CheckoutState.IDLE:
            raise CheckoutStateError(f"Cannot start checkout while {self._state.value}")
        if self.cart.is_empty:
            logger.warning("Checkout rejected, cart is empty")
            raise EmptyCartError()
        self._set_state(CheckoutState.PAYMENT_OPEN)

    def cancel_payment(self) -> None:
        """Close payment capture without touching the cart."""
        if self._state == CheckoutState.PAYMENT_OPEN:
            self._set_state(CheckoutState.IDLE)
        elif self._state == CheckoutState.SUBMITTING:
            logger.warning("Cancel ignored, transaction submission in progress")

    def payment_for_cart(
        self, payment_method: str, cash_received: Optional[Decimal] = None
    ) -> PaymentDetails:
        """Payment details for the cart as it is now."""
        return PaymentDetails.for_cart(self.cart.snapshot(), payment_method, cash_received)

    async def complete_payment(self, details: PaymentDetails) -> Optional[Receipt]:
        """
        Record the sale and open the receipt.

        Returns None without submitting when a submission is already in
        flight or the payment carries no items.

        Raises:
            CheckoutStateError: If payment capture is not open
            InvalidPaymentError: If the payment method is not configured
            CheckoutFailedError: If the backend rejects the sale or times out
        """
        if self._state == CheckoutState.SUBMITTING:
            logger.warning("Payment ignored, transaction submission in progress")
            return None
        if self._state != CheckoutState.PAYMENT_OPEN:
            raise CheckoutStateError(f"Payment is not open (state: {self._state.value})")
        if not details.items:
            return None
        if details.payment_method not in self.payment_methods:
            raise InvalidPaymentError(f"Unknown payment method: {details.payment_method}")

        self._set_state(CheckoutState.SUBMITTING)
        try:
            result = await asyncio.wait_for(
                self.client.create_transaction(
                    cashier=self.cashier_name,
                    payment_method=details.payment_method,
                    total=details.total,
                    items=details.items,
                    user_id=self.user_id,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Transaction submission timed out after {self.timeout}s")
            self._set_state(CheckoutState.PAYMENT_OPEN)
            raise CheckoutFailedError("Payment failed: the backend did not respond. Please try again.") from e
        except BackendError as e:
            logger.error(f"Transaction submission failed: {e}")
            self._set_state(CheckoutState.PAYMENT_OPEN)
            raise CheckoutFailedError(f"Payment failed: {e}. Please try again.", e.status_code) from e
        except BaseException:
            # Cancelled or unexpected: never leave the checkout stuck submitting
            logger.error("Transaction submission aborted", exc_info=True)
            self._set_state(CheckoutState.PAYMENT_OPEN)
            raise

        # Receipt is built from details.items before the cart is cleared
        is_cash = details.payment_method == CASH
        receipt = Receipt(
            transaction_id=result.transaction_id,
            receipt_number=f"RCP-{result.transaction_id}",
            payment_method=details.payment_method,
            total=details.total,
            cashier_name=self.cashier_name,
            timestamp=result.date_time or datetime.now(timezone.utc),
            items=tuple(details.items),
            cash_received=details.cash_received if is_cash else None,
            change=details.change if is_cash else None,
        )
        self._last_receipt = receipt
        self._set_state(CheckoutState.RECEIPT_OPEN)
        self.cart.clear_cart()
        logger.info(f"Sale {receipt.receipt_number} completed, total {receipt.total}")
        return receipt

    def close_receipt(self) -> None:
        if self._state == CheckoutState.RECEIPT_OPEN:
            self._set_state(CheckoutState.IDLE)

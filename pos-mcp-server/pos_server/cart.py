"""In-memory shopping cart with stock validation."""

import logging
from decimal import Decimal
from typing import Callable, Optional

from .errors import InsufficientStockError, OutOfStockError
from .models import CartLine, Product

logger = logging.getLogger(__name__)

ProductLookup = Callable[[str], Optional[Product]]
CartListener = Callable[["Cart"], None]


class Cart:
    """
    Line items for the sale in progress, at most one line per product.

    Line quantities never exceed the product's stock at the time of the
    mutation and never drop below 1; subtotals and the total are always
    derived from quantity and the snapshotted price.
    """

    def __init__(self, product_lookup: ProductLookup) -> None:
        """
        Args:
            product_lookup: Returns the current product for an id, or None
        """
        self._product_lookup = product_lookup
        self._lines: dict[str, CartLine] = {}
        self._listeners: list[CartListener] = []

    def subscribe(self, listener: CartListener) -> None:
        """Call listener with the cart after every mutation."""
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in self._listeners:
            listener(self)

    def add_to_cart(self, product: Product) -> CartLine:
        """
        Add one unit of a product.

        Raises:
            OutOfStockError: If the product has no stock
            InsufficientStockError: If the cart already holds all of it
        """
        if product.stock <= 0:
            logger.warning(f"Add rejected, {product.name} is out of stock")
            raise OutOfStockError(product.name)

        existing = self._lines.get(product.id)
        if existing is not None:
            if existing.quantity >= product.stock:
                logger.warning(f"Add rejected, only {product.stock} of {product.name} in stock")
                raise InsufficientStockError(product.name, product.stock)
            line = existing.model_copy(update={"quantity": existing.quantity + 1})
        else:
            line = CartLine(
                product_id=product.id,
                product_name=product.name,
                price=product.price,
                quantity=1,
            )

        self._lines[product.id] = line
        self._changed()
        return line

    def update_quantity(self, product_id: str, delta: int) -> Optional[CartLine]:
        """
        Change a line's quantity by delta.

        Unknown products and changes that would take the quantity to zero or
        below leave the cart untouched; use remove_from_cart to drop a line.

        Raises:
            InsufficientStockError: If the new quantity exceeds stock
        """
        product = self._product_lookup(str(product_id))
        if product is None:
            return None
        line = self._lines.get(product.id)
        if line is None:
            return None

        new_quantity = line.quantity + delta
        if new_quantity <= 0:
            return line
        if new_quantity > product.stock:
            logger.warning(f"Update rejected, only {product.stock} of {product.name} in stock")
            raise InsufficientStockError(product.name, product.stock)

        line = line.model_copy(update={"quantity": new_quantity})
        self._lines[product.id] = line
        self._changed()
        return line

    def remove_from_cart(self, product_id: str) -> None:
        if self._lines.pop(str(product_id), None) is not None:
            self._changed()

    def clear_cart(self) -> None:
        self._lines.clear()
        self._changed()

    def total(self) -> Decimal:
        return sum((line.subtotal for line in self._lines.values()), Decimal("0"))

    def lines(self) -> tuple[CartLine, ...]:
        """Current lines in insertion order; lines are immutable."""
        return tuple(self._lines.values())

    snapshot = lines

    def get_line(self, product_id: str) -> Optional[CartLine]:
        return self._lines.get(str(product_id))

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def __len__(self) -> int:
        return len(self._lines)

"""Product catalog: filtering and management."""

import logging
from typing import Any, Iterable, Optional, Union

from .categories import (
    ALL_CATEGORIES,
    curated_categories,
    default_categories,
    merge_categories,
)
from .errors import (
    BackendError,
    DuplicateBarcodeError,
    DuplicateCategoryError,
    PosValidationError,
)
from .models import Category, MovementType, Product
from .pos_client import PosBackendClient

logger = logging.getLogger(__name__)


def filter_products(
    products: Iterable[Product],
    search_term: str = "",
    selected_category: Optional[str] = None,
) -> list[Product]:
    """
    Products visible for a search term and selected category.

    The term matches name or category case-insensitively, or the barcode
    case-sensitively. No category, "" or "All" leaves category unconstrained;
    otherwise the category must match exactly.
    """
    term = search_term or ""
    lowered = term.lower()
    result = []
    for product in products:
        matches_search = (
            lowered in product.name.lower()
            or lowered in product.category.lower()
            or term in product.barcode
        )
        if not matches_search:
            continue
        if selected_category and selected_category != ALL_CATEGORIES:
            if product.category != selected_category:
                continue
        result.append(product)
    return result


def category_count(products: Iterable[Product], category_name: str) -> int:
    if category_name == ALL_CATEGORIES:
        return sum(1 for _ in products)
    return sum(1 for p in products if p.category == category_name)


def is_low_stock(product: Product) -> bool:
    return product.stock <= product.min_stock


class Catalog:
    """Product and category snapshot for one terminal session."""

    def __init__(
        self,
        products: Optional[Iterable[Product]] = None,
        categories: Optional[Iterable[Category]] = None,
    ) -> None:
        self._products: dict[str, Product] = {p.id: p for p in products or ()}
        self._backend_categories: list[Category] = list(categories or ())

    @property
    def products(self) -> list[Product]:
        return list(self._products.values())

    @property
    def backend_categories(self) -> list[Category]:
        return list(self._backend_categories)

    @property
    def categories(self) -> list[Category]:
        """Curated categories merged with the backend ones."""
        return merge_categories(curated_categories(), self._backend_categories)

    def get_product(self, product_id: str) -> Optional[Product]:
        return self._products.get(str(product_id))

    def search(self, search_term: str = "", selected_category: Optional[str] = None) -> list[Product]:
        return filter_products(self._products.values(), search_term, selected_category)

    async def load(self, client: PosBackendClient) -> None:
        """
        Refresh products and categories from the backend.

        A failed or empty category load falls back to the default list.

        Raises:
            BackendError: If products cannot be loaded
        """
        try:
            products = await client.get_products()
        except BackendError as e:
            logger.error(f"Failed to load products: {e}")
            raise
        self._products = {p.id: p for p in products}
        logger.info(f"Loaded {len(products)} products")

        try:
            categories = await client.get_categories()
        except BackendError as e:
            logger.error(f"Failed to load categories from backend: {e}")
            categories = []
        if not categories:
            logger.info("Using default category list")
            categories = default_categories()
        self._backend_categories = categories

    def _check_barcode(self, barcode: str, product_id: Optional[str] = None) -> str:
        barcode = barcode.strip()
        if barcode and any(
            p.barcode == barcode and p.id != product_id for p in self._products.values()
        ):
            raise DuplicateBarcodeError(barcode)
        return barcode

    async def add_product(
        self, client: PosBackendClient, product: Product, created_by: Optional[str] = None
    ) -> None:
        """
        Create a product and reload the catalog.

        Raises:
            DuplicateBarcodeError: If another product already uses the barcode
        """
        barcode = self._check_barcode(product.barcode)
        await client.create_product(product.model_copy(update={"barcode": barcode}), created_by)
        await self.load(client)

    async def update_product(
        self, client: PosBackendClient, product_id: str, updates: dict[str, Any]
    ) -> None:
        """
        Partially update a product and reload the catalog.

        Raises:
            DuplicateBarcodeError: If another product already uses the barcode
        """
        if "barcode" in updates:
            updates = {**updates, "barcode": self._check_barcode(updates["barcode"], str(product_id))}
        await client.update_product(str(product_id), updates)
        await self.load(client)

    async def add_category(
        self, client: PosBackendClient, name: str, image: Optional[tuple[str, bytes]] = None
    ) -> Category:
        """
        Create a category on the backend.

        Raises:
            PosValidationError: If the name is blank
            DuplicateCategoryError: If the name exists (case-insensitive)
        """
        trimmed = name.strip()
        if not trimmed:
            raise PosValidationError("Category name is required")
        if any(
            isinstance(c.name, str) and c.name.lower() == trimmed.lower()
            for c in self._backend_categories
        ):
            raise DuplicateCategoryError(trimmed)

        created = await client.create_category(trimmed, image)
        self._backend_categories.append(created)
        logger.info(f"Created category {trimmed} ({created.id})")
        return created

    async def delete_category(self, client: PosBackendClient, category_id: Union[int, str]) -> None:
        """Delete a category; products keep their category label."""
        await client.delete_category(category_id)
        self._backend_categories = [
            c for c in self._backend_categories if str(c.id) != str(category_id)
        ]
        logger.info(f"Deleted category {category_id}")

    async def record_stock_movement(
        self,
        client: PosBackendClient,
        product_id: str,
        change_type: str,
        quantity_change: int,
        remarks: str = "",
    ) -> None:
        """
        Log a manual stock movement and reload the catalog.

        Raises:
            PosValidationError: Unknown product or movement type, or a zero change
        """
        product = self.get_product(str(product_id))
        if product is None:
            raise PosValidationError(f"Unknown product: {product_id}")
        try:
            movement = MovementType(change_type)
        except ValueError:
            allowed = ", ".join(m.value for m in MovementType)
            raise PosValidationError(f"Unknown movement type: {change_type} (use one of {allowed})")
        if quantity_change == 0:
            raise PosValidationError("Quantity change must not be zero")

        await client.add_inventory_log(product.id, movement, quantity_change, remarks)
        logger.info(f"Recorded {movement.value} of {quantity_change} for {product.name}")
        await self.load(client)

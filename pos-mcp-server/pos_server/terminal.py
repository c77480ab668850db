"""One cashier's terminal session."""

import logging
from typing import Optional

import httpx

from .auth import AuthManager, FileSessionStore, SessionStore
from .cart import Cart
from .catalog import Catalog, category_count
from .categories import category_gradient, category_image_url, display_categories
from .checkout import CheckoutOrchestrator
from .config import Settings
from .errors import PosValidationError
from .models import AuthCredentials, Product, User
from .pos_client import PosBackendClient

logger = logging.getLogger(__name__)


class PosTerminal:
    """Wires the catalog, cart and checkout to one backend client."""

    def __init__(
        self,
        settings: Settings,
        store: Optional[SessionStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Args:
            settings: Terminal settings
            store: Session storage (defaults to the settings session file)
            transport: Optional httpx transport override
        """
        self.settings = settings
        self.auth_manager = AuthManager(store or FileSessionStore(settings.session_file))
        self.client = PosBackendClient(
            self.auth_manager,
            base_url=settings.api_base,
            timeout=settings.request_timeout,
            transport=transport,
        )
        self.catalog = Catalog()
        self.cart = Cart(self.catalog.get_product)
        self.checkout = CheckoutOrchestrator(
            self.cart,
            self.client,
            cashier_name=self.cashier_name,
            payment_methods=settings.payment_methods,
            timeout=settings.checkout_timeout,
            user_id=self._user_id(),
        )

    @property
    def user(self) -> Optional[User]:
        return self.auth_manager.session.user

    @property
    def cashier_name(self) -> str:
        user = self.user
        if user is not None and (user.name or user.username):
            return user.name or user.username
        return self.settings.cashier_name

    def _user_id(self):
        user = self.user
        return user.id if user is not None else None

    async def login(self, username: Optional[str] = None, password: Optional[str] = None) -> User:
        """
        Sign in, falling back to configured credentials.

        Raises:
            PosValidationError: If no credentials are available
            BackendError: If the backend rejects the login
        """
        username = username or self.settings.username
        password = password or self.settings.password
        if not username or not password:
            raise PosValidationError(
                "No credentials provided and POS_USERNAME/POS_PASSWORD not configured."
            )
        user = await self.client.login(AuthCredentials(username=username, password=password))
        self.checkout.cashier_name = self.cashier_name
        self.checkout.user_id = self._user_id()
        logger.info(f"Signed in as {self.cashier_name}")
        return user

    def logout(self) -> None:
        self.client.logout()
        logger.info("Signed out")
        self.checkout.cashier_name = self.cashier_name
        self.checkout.user_id = None

    async def reload_catalog(self) -> None:
        await self.catalog.load(self.client)

    def require_product(self, product_id: str) -> Product:
        product = self.catalog.get_product(product_id)
        if product is None:
            raise PosValidationError(f"Unknown product: {product_id}")
        return product

    def add_to_cart(self, product_id: str) -> None:
        self.cart.add_to_cart(self.require_product(product_id))

    def category_cards(self) -> list[dict]:
        """Category browser entries with product counts and presentation."""
        products = self.catalog.products
        cards = []
        for category in display_categories(self.catalog.categories):
            cards.append({
                "id": category.id,
                "name": category.name,
                "count": category_count(products, category.name),
                "gradient": category_gradient(category.name),
                "image_url": category_image_url(category, self.settings.asset_base),
            })
        return cards

    def cart_summary(self) -> dict:
        return {
            "items": [line.model_dump(mode="json") for line in self.cart.lines()],
            "item_count": self.cart.item_count,
            "total": str(self.cart.total()),
            "checkout_state": self.checkout.state.value,
        }

    async def aclose(self) -> None:
        await self.client.aclose()

"""Cart engine tests."""

from decimal import Decimal

import pytest

from pos_server.cart import Cart
from pos_server.errors import InsufficientStockError, OutOfStockError

from conftest import make_product


def assert_consistent(cart: Cart) -> None:
    for line in cart.lines():
        assert line.subtotal == line.quantity * line.price
    assert cart.total() == sum((line.subtotal for line in cart.lines()), Decimal("0"))


class TestAddToCart:

    def test_out_of_stock_product_is_rejected(self, cart, catalog):
        soap = catalog.get_product("3")

        with pytest.raises(OutOfStockError):
            cart.add_to_cart(soap)

        assert cart.is_empty

    def test_adding_up_to_stock_then_one_more_fails(self, cart, milk):
        for _ in range(3):
            cart.add_to_cart(milk)

        with pytest.raises(InsufficientStockError):
            cart.add_to_cart(milk)

        assert cart.get_line("1").quantity == 3
        assert cart.total() == Decimal("180")
        assert_consistent(cart)

    def test_first_add_creates_line_with_price_snapshot(self, cart, catalog, milk):
        cart.add_to_cart(milk)
        catalog._products["1"] = milk.model_copy(update={"price": Decimal("99")})

        cart.add_to_cart(catalog.get_product("1"))

        line = cart.get_line("1")
        assert line.product_name == "Milk"
        assert line.price == Decimal("60")
        assert line.quantity == 2
        assert line.subtotal == Decimal("120")

    def test_one_line_per_product_in_insertion_order(self, cart, catalog, milk):
        bread = catalog.get_product("2")
        cart.add_to_cart(milk)
        cart.add_to_cart(bread)
        cart.add_to_cart(milk)

        assert [line.product_id for line in cart.lines()] == ["1", "2"]
        assert len(cart) == 2
        assert cart.item_count == 3
        assert cart.total() == Decimal("165.50")


class TestUpdateQuantity:

    def test_decrement_never_drops_below_one(self, cart, milk):
        cart.add_to_cart(milk)
        cart.add_to_cart(milk)

        cart.update_quantity("1", -2)
        assert cart.get_line("1").quantity == 2

        cart.update_quantity("1", -1)
        cart.update_quantity("1", -1)
        assert cart.get_line("1").quantity == 1

    def test_increment_past_stock_fails_and_keeps_line(self, cart, milk):
        cart.add_to_cart(milk)

        with pytest.raises(InsufficientStockError):
            cart.update_quantity("1", 3)

        assert cart.get_line("1").quantity == 1

    def test_increment_within_stock(self, cart, milk):
        cart.add_to_cart(milk)

        line = cart.update_quantity("1", 2)

        assert line.quantity == 3
        assert line.subtotal == Decimal("180")
        assert_consistent(cart)

    def test_unknown_product_is_a_no_op(self, cart, milk):
        cart.add_to_cart(milk)

        assert cart.update_quantity("999", 1) is None
        assert cart.get_line("1").quantity == 1

    def test_uses_current_stock(self, cart, catalog, milk):
        cart.add_to_cart(milk)
        cart.add_to_cart(milk)
        catalog._products["1"] = milk.model_copy(update={"stock": 2})

        with pytest.raises(InsufficientStockError):
            cart.update_quantity("1", 1)


class TestRemoveAndClear:

    def test_remove_deletes_line(self, cart, catalog, milk):
        cart.add_to_cart(milk)
        cart.add_to_cart(catalog.get_product("2"))

        cart.remove_from_cart("1")

        assert cart.get_line("1") is None
        assert cart.total() == Decimal("45.50")

    def test_clear_empties_cart(self, cart, milk):
        cart.add_to_cart(milk)

        cart.clear_cart()

        assert cart.is_empty
        assert cart.total() == Decimal("0")


def test_random_mutations_keep_invariants(catalog):
    import random

    rng = random.Random(1234)
    cart = Cart(catalog.get_product)
    products = [catalog.get_product(pid) for pid in ("1", "2", "3")]

    for _ in range(300):
        product = rng.choice(products)
        action = rng.choice(["add", "update", "remove"])
        try:
            if action == "add":
                cart.add_to_cart(product)
            elif action == "update":
                cart.update_quantity(product.id, rng.randint(-3, 3))
            else:
                cart.remove_from_cart(product.id)
        except (OutOfStockError, InsufficientStockError):
            pass

        for line in cart.lines():
            assert 1 <= line.quantity <= catalog.get_product(line.product_id).stock
        assert_consistent(cart)


def test_listeners_notified_on_mutation(cart, milk):
    seen = []
    cart.subscribe(lambda c: seen.append(c.item_count))

    cart.add_to_cart(milk)
    cart.update_quantity("1", 1)
    cart.clear_cart()

    assert seen == [1, 2, 0]

"""Shared BDD fixtures and step definitions for cart and checkout scenarios.

Steps are synchronous; coroutines run on a per-scenario event loop.
"""

import asyncio

import pytest
from pytest_bdd import given, parsers, then

from app import build_storefront
from identity.profile.fake_adapter import FakeProfileGateway
from identity.session import User
from ordering.cart.cart import CartItem
from ordering.cart.gateway.fake_adapter import FakeCartGateway
from ordering.cart.storage import InMemoryCartStorage
from payments.gateway.fake_adapter import FakePaymentGateway
from payments.orders.fake_adapter import FakeOrderApi
from shared.config import Settings


def _shoe(variant: str, quantity: int = 1) -> CartItem:
    return CartItem(
        product_id=f"prod-{variant}",
        product_variant_id=variant,
        name=variant.replace("-", " ").title(),
        price=60.0,
        quantity=quantity,
        size="42",
        color="black",
        image=f"/images/{variant}.jpg",
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def run():
    loop = asyncio.new_event_loop()
    yield loop.run_until_complete
    loop.close()


@pytest.fixture()
def accounts():
    return {
        "alice": User(id="user-alice", email="alice@example.com", first_name="Alice", last_name="Moss", token="tok-alice"),
        "bob": User(id="user-bob", email="bob@example.com", first_name="Bob", last_name="Reyes", token="tok-bob"),
    }


@pytest.fixture()
def shoe():
    return _shoe


@pytest.fixture()
def error():
    """Container for captured storefront errors."""
    return {"exc": None}


@pytest.fixture()
def shop(run):
    fakes = {
        "storage": InMemoryCartStorage(),
        "cart_gateway": FakeCartGateway(),
        "payment_gateway": FakePaymentGateway(),
        "order_api": FakeOrderApi(),
        "profile": FakeProfileGateway(),
    }
    shop = dict(fakes, statuses=[])

    def open_storefront():
        storefront = build_storefront(
            Settings(configure_logging=False, auto_sync_cart=False, order_submit_retry_delay=0),
            storage=fakes["storage"],
            cart_gateway=fakes["cart_gateway"],
            payment_gateway=fakes["payment_gateway"],
            order_api=fakes["order_api"],
            profile=fakes["profile"],
        )
        run(storefront.cart.hydrate())
        storefront.cart.subscribe(lambda new, old: shop["statuses"].append(new), selector=lambda state: state.status)
        shop["storefront"] = storefront
        return storefront

    shop["open"] = open_storefront
    open_storefront()
    yield shop
    shop["storefront"].close()


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.re(r'a guest shopper with (?P<count>\d+) pairs? of "(?P<variant>[^"]+)" in the cart'),
    converters={"count": int},
)
def guest_with_items(shop, count, variant):
    shop["storefront"].cart.add_item(_shoe(variant, quantity=count))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the cart contains only "{variant}"'))
def cart_contains_only(shop, variant):
    assert [item.product_variant_id for item in shop["storefront"].cart.snapshot()] == [variant]


@then(parsers.re(r"the cart holds (?P<count>\d+) items?"), converters={"count": int})
def cart_holds(shop, count):
    assert shop["storefront"].cart.get_total_items() == count


@then("the cart is empty")
def cart_is_empty(shop):
    assert shop["storefront"].cart.snapshot().is_empty

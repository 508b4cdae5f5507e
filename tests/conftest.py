import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Initialize the ordering domain and push its domain_context so value objects and the
    checkout aggregate can be built anywhere in the suite.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from app import bootstrap
    from ordering.domain import ordering
    from shared.config import Settings

    bootstrap(Settings(configure_logging=False))
    ordering.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def reset_adapters():
    """Fixture to reset adapter factories and cached settings after every test"""
    yield

    from identity.profile import reset_profile_gateway
    from ordering.cart.gateway import reset_cart_gateway
    from payments.gateway import reset_gateway
    from payments.orders import reset_order_api
    from shared.config import get_settings
    from shared.logging import clear_context

    reset_cart_gateway()
    reset_gateway()
    reset_order_api()
    reset_profile_gateway()
    get_settings.cache_clear()
    clear_context()


# ---------------------------------------------------------------------------
# Shared builders
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_item():
    from ordering.cart.cart import CartItem

    def _make(
        variant="var-001",
        size="42",
        color="black",
        price=60.0,
        quantity=1,
        name="Trail Runner",
        product="prod-001",
    ):
        return CartItem(
            product_id=product,
            product_variant_id=variant,
            name=name,
            price=price,
            quantity=quantity,
            size=size,
            color=color,
            image=f"/images/{variant}.jpg",
        )

    return _make


@pytest.fixture()
def alice():
    from identity.session import User

    return User(id="user-alice", email="alice@example.com", first_name="Alice", last_name="Moss", token="tok-alice")


@pytest.fixture()
def bob():
    from identity.session import User

    return User(id="user-bob", email="bob@example.com", first_name="Bob", last_name="Reyes", token="tok-bob")


@pytest.fixture()
def shipping_details():
    return {
        "first_name": "Alice",
        "last_name": "Moss",
        "email": "alice@example.com",
        "phone": "555-0100",
        "address": "12 Orchard Lane",
        "city": "Portland",
        "state": "OR",
        "zip_code": "97201",
        "country": "US",
    }


# ---------------------------------------------------------------------------
# Fake adapters
# ---------------------------------------------------------------------------
@pytest.fixture()
def payment_gateway():
    from payments.gateway.fake_adapter import FakePaymentGateway

    return FakePaymentGateway()


@pytest.fixture()
def order_api():
    from payments.orders.fake_adapter import FakeOrderApi

    return FakeOrderApi()


@pytest.fixture()
def profile_gateway():
    from identity.profile.fake_adapter import FakeProfileGateway

    return FakeProfileGateway()


# ---------------------------------------------------------------------------
# HTTP test server
# ---------------------------------------------------------------------------
@pytest.fixture()
async def serve():
    """Start an aiohttp app on a local port; returns a factory yielding its base URL."""
    from aiohttp import web
    from aiohttp.test_utils import TestServer

    servers = []

    async def _serve(routes, prefix="/api"):
        app = web.Application()
        app.add_routes(routes)
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return str(server.make_url(prefix))

    yield _serve

    for server in servers:
        await server.close()

import pytest

from identity.session import IdentityStore
from ordering.cart.gateway.fake_adapter import FakeCartGateway
from ordering.cart.storage import InMemoryCartStorage
from ordering.cart.store import CartStore
from ordering.checkout.store import CheckoutStore
from payments.orchestrator import PaymentOrchestrator
from shared.state import MessageBus


@pytest.fixture()
def bus():
    return MessageBus()


@pytest.fixture()
def identity(bus):
    return IdentityStore(bus)


@pytest.fixture()
def cart_gateway():
    return FakeCartGateway()


@pytest.fixture()
def storage():
    return InMemoryCartStorage()


@pytest.fixture()
def cart_store(storage, cart_gateway, identity):
    return CartStore(storage, cart_gateway, identity.current_user)


@pytest.fixture()
async def hydrated_cart(cart_store):
    await cart_store.hydrate()
    return cart_store


@pytest.fixture()
def orchestrator(payment_gateway, order_api, identity):
    return PaymentOrchestrator(payment_gateway, order_api, current_user=identity.current_user, retry_delay=0)


@pytest.fixture()
def checkout(hydrated_cart, orchestrator, identity, profile_gateway):
    store = CheckoutStore(
        hydrated_cart,
        orchestrator,
        current_user=identity.current_user,
        profile=profile_gateway,
    )
    yield store
    store.close()

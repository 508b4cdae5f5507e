import pytest

from ordering.cart.gateway import get_cart_gateway, set_cart_gateway
from ordering.cart.gateway.fake_adapter import FakeCartGateway
from ordering.cart.gateway.http_adapter import HttpCartGateway
from payments.gateway import get_gateway
from payments.gateway.fake_adapter import FakePaymentGateway
from payments.gateway.stripe_adapter import StripeGateway
from payments.orders import get_order_api
from payments.orders.fake_adapter import FakeOrderApi
from payments.orders.http_adapter import HttpOrderApi
from shared.config import get_settings


@pytest.fixture()
def real_collaborators(monkeypatch):
    monkeypatch.setenv("SOLESTREAM_CART_GATEWAY", "http")
    monkeypatch.setenv("SOLESTREAM_PAYMENT_GATEWAY", "stripe")
    monkeypatch.setenv("SOLESTREAM_ORDER_API", "http")
    monkeypatch.setenv("SOLESTREAM_STRIPE_PUBLISHABLE_KEY", "pk_test_123")
    get_settings.cache_clear()


def test_fakes_by_default():
    assert isinstance(get_cart_gateway(), FakeCartGateway)
    assert isinstance(get_gateway(), FakePaymentGateway)
    assert isinstance(get_order_api(), FakeOrderApi)


def test_factories_are_cached():
    assert get_cart_gateway() is get_cart_gateway()
    assert get_gateway() is get_gateway()


@pytest.mark.usefixtures("real_collaborators")
def test_http_adapters_from_settings():
    assert isinstance(get_cart_gateway(), HttpCartGateway)
    assert isinstance(get_order_api(), HttpOrderApi)
    gateway = get_gateway()
    assert isinstance(gateway, StripeGateway)
    assert gateway.stripe.headers["Authorization"] == "Bearer pk_test_123"


def test_override_is_returned(monkeypatch):
    custom = FakeCartGateway()
    set_cart_gateway(custom)

    assert get_cart_gateway() is custom


def test_unknown_payment_gateway(monkeypatch):
    monkeypatch.setenv("SOLESTREAM_PAYMENT_GATEWAY", "cash")
    get_settings.cache_clear()

    with pytest.raises(ValueError):
        get_gateway()

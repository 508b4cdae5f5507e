import pytest

from ordering.cart.cart import Cart
from ordering.checkout.address import validate_shipping_address
from payments.orchestrator import PaymentOrchestrator


@pytest.fixture()
def address(shipping_details):
    return validate_shipping_address(shipping_details)


@pytest.fixture()
def cart(make_item):
    return Cart().add_item(make_item(price=60.0, quantity=2))


@pytest.fixture()
def orchestrator(payment_gateway, order_api):
    return PaymentOrchestrator(payment_gateway, order_api, retry_delay=0)

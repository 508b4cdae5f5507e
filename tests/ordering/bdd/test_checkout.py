"""BDD tests for the checkout flow."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, scenarios, then, when

from ordering.checkout.session import CheckoutStep
from ordering.checkout.store import CheckoutView
from shared.errors import StorefrontError

scenarios("features/checkout.feature")

CARDS = {
    "approved": {"payment_method": "pm_card_visa"},
    "declined": {"outcome": "declined"},
    "processing": {"outcome": "processing"},
}

VALID_ADDRESS = {
    "first_name": "Alice",
    "last_name": "Moss",
    "email": "alice@example.com",
    "address": "12 Orchard Lane",
    "city": "Portland",
    "state": "OR",
    "zip_code": "97201",
}


@pytest.fixture()
def checkout(shop):
    return shop["storefront"].checkout


@given("the shopper has started checkout")
def started_checkout(checkout, run):
    run(checkout.start())


@given("the order service is unavailable")
def order_service_down(shop):
    shop["order_api"].configure(should_succeed=False)


@when("the shopper enters a valid shipping address")
def enter_address(checkout):
    checkout.update_shipping(**VALID_ADDRESS)


@when("the shopper proceeds to payment")
def proceed(checkout, run, error):
    try:
        run(checkout.proceed_to_payment())
    except (ValidationError, StorefrontError) as exc:
        error["exc"] = exc


@when(parsers.cfparse('the shopper pays with a card that is "{card}"'))
def pay(checkout, run, error, card):
    try:
        run(checkout.submit_payment(CARDS[card]))
    except StorefrontError as exc:
        error["exc"] = exc


@when(parsers.cfparse('the payment settles as "{status}"'))
def settle(checkout, shop, status):
    shop["payment_gateway"].settle(checkout.state.payment_intent.payment_intent_id, status)


@when("the shopper checks the payment status")
def check_status(checkout, run):
    run(checkout.check_payment_status())


@when("the shopper empties the cart")
def empty_cart(shop):
    shop["storefront"].cart.clear_cart()


@then("the order confirmation is shown")
def confirmation_shown(checkout):
    assert checkout.state.view is CheckoutView.ORDER_CONFIRMATION
    assert checkout.state.order_id


@then(parsers.cfparse('the checkout shows errors for "{fields}"'))
def shows_errors(checkout, error, fields):
    assert isinstance(error["exc"], ValidationError)
    for name in fields.split(", "):
        assert name in checkout.state.field_errors


@then(parsers.cfparse('the checkout step is "{step}"'))
def step_is(checkout, step):
    assert checkout.state.step is CheckoutStep(step)


@then(parsers.cfparse('the checkout view is "{view}"'))
def view_is(checkout, view):
    assert checkout.state.view is CheckoutView(view)


@then(parsers.cfparse('the checkout error is "{message}"'))
def error_is(checkout, message):
    assert checkout.state.error == message


@then("a support notice with the payment reference is shown")
def support_notice(checkout):
    notice = checkout.state.notice
    assert notice is not None
    assert notice.reference == checkout.state.payment_intent.payment_intent_id
    assert notice.reference in notice.message

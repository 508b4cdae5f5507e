"""BDD tests for cart reconciliation across sign-in and sign-out."""

from pytest_bdd import given, parsers, scenarios, then, when

from ordering.cart.cart import Cart
from ordering.cart.store import CartStatus

scenarios("features/identity_switch.feature")


@given(
    parsers.re(r'the account "(?P<account>\w+)" has (?P<count>\d+) pairs? of "(?P<variant>[^"]+)" saved on the server'),
    converters={"count": int},
)
def server_cart(shop, accounts, shoe, account, count, variant):
    shop["cart_gateway"].carts[accounts[account].id] = Cart().add_item(shoe(variant, quantity=count))


@given("the cart server is unavailable")
def cart_server_down(shop):
    shop["cart_gateway"].configure(should_succeed=False, failure_reason="Failed to fetch cart")


@given(parsers.cfparse('the shopper signs in as "{account}"'))
@when(parsers.cfparse('the shopper signs in as "{account}"'))
def sign_in(shop, run, accounts, account):
    run(shop["storefront"].identity.sign_in(accounts[account]))


@when("the shopper signs out")
def sign_out(shop, run):
    run(shop["storefront"].sign_out())


@when("the page is reloaded")
def reload(shop):
    shop["storefront"].close()
    shop["open"]()


@then(parsers.cfparse('the cart status is "{status}"'))
def cart_status_is(shop, status):
    assert shop["storefront"].cart.state.status is CartStatus(status)


@then(parsers.cfparse('the cart was never reported as "{status}"'))
def never_reported(shop, status):
    assert CartStatus(status) not in shop["statuses"]
    assert CartStatus.SWITCHING in shop["statuses"]


@then("the cart shows a sync error")
def shows_sync_error(shop):
    assert shop["storefront"].cart.state.sync_error == "Failed to fetch cart"

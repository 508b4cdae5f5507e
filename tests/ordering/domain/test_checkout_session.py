"""Tests for the CheckoutSession aggregate state machine."""

import pytest
from protean.exceptions import ValidationError

from ordering.checkout.address import validate_shipping_address
from ordering.checkout.session import CheckoutSession, CheckoutStep, PaymentIntentRef


@pytest.fixture()
def address(shipping_details):
    return validate_shipping_address(shipping_details)


@pytest.fixture()
def intent():
    return PaymentIntentRef(payment_intent_id="pi_1", client_secret="pi_1_secret_x", amount=53.19)


class TestStart:
    def test_starts_at_shipping(self):
        session = CheckoutSession.start()
        assert session.current_step is CheckoutStep.SHIPPING
        assert session.payment_intent is None
        assert session.billing_same_as_shipping is True

    def test_each_session_has_its_own_id(self):
        assert CheckoutSession.start().id != CheckoutSession.start().id


class TestBeginPayment:
    def test_moves_to_payment(self, address, intent):
        session = CheckoutSession.start()
        session.begin_payment(address, None, intent)

        assert session.current_step is CheckoutStep.PAYMENT
        assert session.payment_intent == intent
        assert session.total_amount == 53.19
        assert session.effective_billing_address == address

    def test_separate_billing_address(self, address, intent, shipping_details):
        billing = validate_shipping_address({**shipping_details, "city": "Salem"})
        session = CheckoutSession.start()
        session.begin_payment(address, billing, intent)

        assert session.billing_same_as_shipping is False
        assert session.effective_billing_address.city == "Salem"

    def test_cannot_begin_payment_twice(self, address, intent):
        session = CheckoutSession.start()
        session.begin_payment(address, None, intent)
        with pytest.raises(ValidationError) as exc:
            session.begin_payment(address, None, intent)
        assert "step" in exc.value.messages


class TestBackToShipping:
    def test_discards_the_intent(self, address, intent):
        session = CheckoutSession.start()
        session.begin_payment(address, None, intent)

        session.back_to_shipping()

        assert session.current_step is CheckoutStep.SHIPPING
        assert session.payment_intent is None
        assert session.total_amount == 0.0

    def test_not_allowed_from_shipping(self):
        with pytest.raises(ValidationError):
            CheckoutSession.start().back_to_shipping()


class TestComplete:
    def test_records_order(self, address, intent):
        session = CheckoutSession.start()
        session.begin_payment(address, None, intent)

        session.complete("ord-1")

        assert session.current_step is CheckoutStep.CONFIRMATION
        assert session.order_id == "ord-1"

    def test_confirmation_is_terminal(self, address, intent):
        session = CheckoutSession.start()
        session.begin_payment(address, None, intent)
        session.complete("ord-1")
        with pytest.raises(ValidationError):
            session.back_to_shipping()

    def test_cannot_skip_payment(self):
        with pytest.raises(ValidationError):
            CheckoutSession.start().complete("ord-1")

"""Checkout session aggregate: one attempt at turning a cart into an order.

State Machine:
    SHIPPING → PAYMENT → CONFIRMATION
    PAYMENT → SHIPPING (shopper goes back; the payment intent is discarded)

Sessions are transient: they are never persisted, and leaving checkout
simply drops the aggregate. A fresh session always starts at SHIPPING.
"""

from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, String, ValueObject

from ordering.checkout.address import ShippingAddress
from ordering.domain import ordering


class CheckoutStep(Enum):
    SHIPPING = "shipping"
    PAYMENT = "payment"
    CONFIRMATION = "confirmation"


_VALID_TRANSITIONS = {
    CheckoutStep.SHIPPING: {CheckoutStep.PAYMENT},
    CheckoutStep.PAYMENT: {CheckoutStep.SHIPPING, CheckoutStep.CONFIRMATION},
    CheckoutStep.CONFIRMATION: set(),  # Terminal
}


@ordering.value_object
class PaymentIntentRef:
    """Handle on a gateway payment intent and the amount it will charge."""

    payment_intent_id = String(required=True, max_length=255)
    client_secret = String(required=True, max_length=500)
    amount = Float(required=True, min_value=0.0)


@ordering.aggregate
class CheckoutSession:
    step = String(choices=CheckoutStep, default=CheckoutStep.SHIPPING.value)
    shipping_address = ValueObject(ShippingAddress)
    billing_same_as_shipping = Boolean(default=True)
    billing_address = ValueObject(ShippingAddress)
    payment_intent = ValueObject(PaymentIntentRef)
    total_amount = Float(default=0.0)
    order_id = String(max_length=255)

    @classmethod
    def start(cls) -> "CheckoutSession":
        return cls(id=str(uuid4()))

    @property
    def current_step(self) -> CheckoutStep:
        return CheckoutStep(self.step)

    @property
    def effective_billing_address(self) -> ShippingAddress | None:
        if self.billing_same_as_shipping:
            return self.shipping_address
        return self.billing_address

    def _assert_can_transition(self, target: CheckoutStep) -> None:
        current = self.current_step
        if target not in _VALID_TRANSITIONS[current]:
            raise ValidationError({"step": [f"Cannot move from {current.value} to {target.value}"]})

    def begin_payment(
        self,
        shipping_address: ShippingAddress,
        billing_address: ShippingAddress | None,
        payment_intent: PaymentIntentRef,
    ) -> None:
        """Record the validated addresses and the freshly created intent, then move to PAYMENT."""
        self._assert_can_transition(CheckoutStep.PAYMENT)
        self.shipping_address = shipping_address
        self.billing_address = billing_address
        self.billing_same_as_shipping = billing_address is None
        self.payment_intent = payment_intent
        self.total_amount = payment_intent.amount
        self.step = CheckoutStep.PAYMENT.value

    def back_to_shipping(self) -> None:
        self._assert_can_transition(CheckoutStep.SHIPPING)
        self.payment_intent = None
        self.total_amount = 0.0
        self.step = CheckoutStep.SHIPPING.value

    def complete(self, order_id: str) -> None:
        self._assert_can_transition(CheckoutStep.CONFIRMATION)
        self.order_id = order_id
        self.step = CheckoutStep.CONFIRMATION.value

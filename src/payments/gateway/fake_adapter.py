"""Configurable fake payment gateway for development and testing.

This adapter simulates Stripe without any external calls. It prices the
cart the way the storefront backend does, and can be configured at runtime
to approve, decline or leave payments pending, making it useful for:
- Automated tests with predictable outcomes
- Development without real gateway credentials

Follows the same pattern as Stripe's test mode (a payment method per
outcome) but simplified: ``payment_details["outcome"]`` overrides the
configured outcome for a single confirmation.
"""

import asyncio
from uuid import uuid4

from ordering.cart.cart import Cart
from ordering.checkout.address import ShippingAddress
from payments.gateway.port import (
    IntentResult,
    PaymentConfirmation,
    PaymentGateway,
    intent_id_from_secret,
)
from shared.errors import GatewayError
from shared.pricing import DEFAULT_RULES, PricingRules, summarize

_STATUS_BY_OUTCOME = {
    "succeeded": "succeeded",
    "declined": "requires_payment_method",
    "processing": "processing",
}


class FakePaymentGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, pricing: PricingRules = DEFAULT_RULES) -> None:
        self.pricing = pricing
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment gateway unavailable"
        self.outcome: str = "succeeded"
        self.decline_reason: str = "Your card was declined."
        self.intents: dict[str, dict] = {}
        self.gate: asyncio.Event | None = None
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Payment gateway unavailable",
        outcome: str = "succeeded",
    ) -> None:
        """Configure gateway behavior at runtime.

        ``should_succeed=False`` makes every call fail as if the gateway were
        unreachable; ``outcome`` decides how confirmations end.
        """
        if outcome not in _STATUS_BY_OUTCOME:
            raise ValueError(f"Unknown outcome: {outcome}")
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.outcome = outcome

    def hold(self) -> asyncio.Event:
        """Make confirmations wait until the returned event is set."""
        self.gate = asyncio.Event()
        return self.gate

    def settle(self, payment_intent_id: str, status: str) -> None:
        """Move a pending intent to a final status, as a webhook would."""
        self.intents[payment_intent_id]["status"] = status

    def _check_available(self) -> None:
        if not self.should_succeed:
            raise GatewayError(self.failure_reason, status=503)

    async def create_payment_intent(
        self,
        cart: Cart,
        shipping_address: ShippingAddress,
        billing_address: ShippingAddress | None = None,
    ) -> IntentResult:
        self.calls.append(
            {
                "method": "create_payment_intent",
                "items": [item.key for item in cart.items],
                "email": shipping_address.email,
            }
        )
        self._check_available()
        if cart.is_empty:
            raise GatewayError("Cart is empty. Cannot create payment intent.", status=400)

        payment_intent_id = f"pi_fake_{uuid4().hex[:16]}"
        amount = summarize(cart.subtotal, self.pricing).total
        client_secret = f"{payment_intent_id}_secret_{uuid4().hex[:12]}"
        self.intents[payment_intent_id] = {"status": "requires_payment_method", "amount": amount}
        return IntentResult(payment_intent_id=payment_intent_id, client_secret=client_secret, amount=amount)

    async def confirm_payment(self, client_secret: str, payment_details: dict) -> PaymentConfirmation:
        payment_intent_id = intent_id_from_secret(client_secret)
        self.calls.append(
            {
                "method": "confirm_payment",
                "payment_intent_id": payment_intent_id,
                "payment_details": dict(payment_details),
            }
        )
        if self.gate is not None:
            await self.gate.wait()
        self._check_available()
        if payment_intent_id not in self.intents:
            raise GatewayError(f"No such payment_intent: '{payment_intent_id}'", status=404)
        if self.intents[payment_intent_id]["status"] == "succeeded":
            raise GatewayError("This PaymentIntent has already succeeded and cannot be confirmed", status=400)

        outcome = payment_details.get("outcome", self.outcome)
        status = _STATUS_BY_OUTCOME[outcome]
        self.intents[payment_intent_id]["status"] = status
        if outcome == "declined":
            return PaymentConfirmation(
                payment_intent_id=payment_intent_id,
                status=status,
                failure_reason=self.decline_reason,
                decline_code="card_declined",
            )
        return PaymentConfirmation(payment_intent_id=payment_intent_id, status=status)

    async def retrieve_payment(self, client_secret: str) -> PaymentConfirmation:
        payment_intent_id = intent_id_from_secret(client_secret)
        self.calls.append({"method": "retrieve_payment", "payment_intent_id": payment_intent_id})
        self._check_available()
        if payment_intent_id not in self.intents:
            raise GatewayError(f"No such payment_intent: '{payment_intent_id}'", status=404)
        return PaymentConfirmation(
            payment_intent_id=payment_intent_id,
            status=self.intents[payment_intent_id]["status"],
        )

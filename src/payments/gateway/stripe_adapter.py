"""Stripe payment gateway adapter.

Intents are created server-side by the storefront backend
(``POST /checkout/create-payment-intent``), which holds the secret key and
prices the cart. Confirmation and status lookups go straight to Stripe's
REST API with the publishable key and the intent's client secret, exactly
as Stripe.js does in the browser.
"""

import structlog

from ordering.cart.cart import Cart
from ordering.checkout.address import ShippingAddress
from payments.gateway.port import (
    IntentResult,
    PaymentConfirmation,
    PaymentGateway,
    intent_id_from_secret,
)
from payments.schemas import CheckoutRequest, PaymentIntentResponse, StripeIntentSchema
from shared.errors import GatewayError
from shared.http import HttpClient

logger = structlog.get_logger(__name__)


class StripeGateway(PaymentGateway):
    def __init__(
        self,
        api_base_url: str,
        publishable_key: str,
        *,
        stripe_api_base: str = "https://api.stripe.com/v1",
        return_url: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.backend = HttpClient(api_base_url, timeout=timeout)
        self.stripe = HttpClient(
            stripe_api_base,
            timeout=timeout,
            headers={"Authorization": f"Bearer {publishable_key}"},
        )
        self.return_url = return_url

    async def create_payment_intent(
        self,
        cart: Cart,
        shipping_address: ShippingAddress,
        billing_address: ShippingAddress | None = None,
    ) -> IntentResult:
        request = CheckoutRequest.build(cart, shipping_address, billing_address)
        body = await self.backend.post(
            "/checkout/create-payment-intent",
            json=request.dump(),
        )
        response = PaymentIntentResponse.model_validate(body)
        return IntentResult(
            payment_intent_id=response.payment_intent_id,
            client_secret=response.client_secret,
            amount=response.total_amount,
        )

    async def confirm_payment(self, client_secret: str, payment_details: dict) -> PaymentConfirmation:
        payment_intent_id = intent_id_from_secret(client_secret)
        form = {"client_secret": client_secret, **payment_details}
        if self.return_url and "return_url" not in form:
            form["return_url"] = self.return_url

        try:
            body = await self.stripe.post(f"/payment_intents/{payment_intent_id}/confirm", data=form)
        except GatewayError as exc:
            if exc.status == 402:
                # Card errors come back as 402 with the intent left in requires_payment_method
                logger.info("stripe_payment_declined", payment_intent_id=payment_intent_id)
                return PaymentConfirmation(
                    payment_intent_id=payment_intent_id,
                    status="requires_payment_method",
                    failure_reason=exc.message,
                    decline_code="card_declined",
                )
            raise

        intent = StripeIntentSchema.model_validate(body)
        return PaymentConfirmation(
            payment_intent_id=intent.id,
            status=intent.status,
            failure_reason=intent.failure_reason,
            decline_code=intent.decline_code,
        )

    async def retrieve_payment(self, client_secret: str) -> PaymentConfirmation:
        payment_intent_id = intent_id_from_secret(client_secret)
        body = await self.stripe.get(
            f"/payment_intents/{payment_intent_id}",
            params={"client_secret": client_secret},
        )
        intent = StripeIntentSchema.model_validate(body)
        return PaymentConfirmation(
            payment_intent_id=intent.id,
            status=intent.status,
            failure_reason=intent.failure_reason,
            decline_code=intent.decline_code,
        )

"""Payment orchestrator: intent creation, confirmation and order submission.

Translates gateway and order API failures into the checkout's error
taxonomy:

- ``PaymentSetupError``: no intent could be created (nothing was charged).
- ``PaymentDeclinedError``: the payment method was refused; try another.
- ``PaymentAmbiguousError``: the outcome is unknown or still pending.
- ``OrderSubmissionError``: the payment succeeded but recording the order
  failed after every retry. Funds were captured, so this always surfaces.

An order is submitted at most once per payment intent. The intent id is the
idempotency key sent to the order API, and the resulting order id is cached
so duplicate submissions (double clicks, retries after a timeout) return
the same order without another call.
"""

import asyncio
from collections.abc import Callable

import structlog

from identity.session import User
from ordering.cart.cart import Cart
from ordering.checkout.address import ShippingAddress
from ordering.checkout.session import PaymentIntentRef
from payments.gateway.port import PaymentConfirmation, PaymentGateway, PaymentOutcome
from payments.orders.port import OrderApi, OrderRequest
from shared.errors import (
    EmptyCartError,
    GatewayError,
    OrderSubmissionError,
    PaymentAmbiguousError,
    PaymentDeclinedError,
    PaymentSetupError,
)

logger = structlog.get_logger(__name__)


class PaymentOrchestrator:
    def __init__(
        self,
        gateway: PaymentGateway,
        orders: OrderApi,
        *,
        current_user: Callable[[], User | None] = lambda: None,
        submit_attempts: int = 3,
        retry_delay: float = 0.5,
    ) -> None:
        self._gateway = gateway
        self._orders = orders
        self._current_user = current_user
        self._submit_attempts = max(1, submit_attempts)
        self._retry_delay = retry_delay
        self._submitted: dict[str, str] = {}  # payment intent id -> order id
        self._submit_locks: dict[str, asyncio.Lock] = {}

    async def create_payment_intent(
        self,
        cart: Cart,
        shipping_address: ShippingAddress,
        billing_address: ShippingAddress | None = None,
    ) -> PaymentIntentRef:
        if cart.is_empty:
            raise EmptyCartError()

        try:
            result = await self._gateway.create_payment_intent(cart, shipping_address, billing_address)
        except GatewayError as exc:
            logger.warning("payment_intent_failed", error=exc.message, status=exc.status)
            raise PaymentSetupError(f"Could not start payment: {exc.message}", retryable=exc.retryable) from exc

        logger.info(
            "payment_intent_created",
            payment_intent_id=result.payment_intent_id,
            amount=result.amount,
            lines=len(cart),
        )
        return PaymentIntentRef(
            payment_intent_id=result.payment_intent_id,
            client_secret=result.client_secret,
            amount=result.amount,
        )

    async def confirm_payment(self, client_secret: str, payment_details: dict) -> PaymentConfirmation:
        """Confirm an intent. Returns only when the payment succeeded."""
        try:
            confirmation = await self._gateway.confirm_payment(client_secret, payment_details)
        except GatewayError as exc:
            if exc.status is not None and 400 <= exc.status < 500 and exc.status != 429:
                logger.info("payment_rejected", error=exc.message, status=exc.status)
                raise PaymentDeclinedError(exc.message) from exc
            # The request may have reached the gateway; the charge could have gone through
            logger.warning("payment_confirmation_unknown", error=exc.message, status=exc.status)
            raise PaymentAmbiguousError(
                "We could not confirm your payment yet. Please check its status before trying again.",
            ) from exc

        return self._interpret(confirmation)

    async def payment_status(self, client_secret: str) -> PaymentConfirmation:
        """Current state of an intent, without raising for declined or pending payments."""
        try:
            return await self._gateway.retrieve_payment(client_secret)
        except GatewayError as exc:
            logger.warning("payment_status_unavailable", error=exc.message)
            raise PaymentAmbiguousError("Payment status is not available right now.") from exc

    def _interpret(self, confirmation: PaymentConfirmation) -> PaymentConfirmation:
        outcome = confirmation.outcome
        if outcome is PaymentOutcome.SUCCEEDED:
            logger.info("payment_succeeded", payment_intent_id=confirmation.payment_intent_id)
            return confirmation
        if outcome is PaymentOutcome.DECLINED:
            logger.info(
                "payment_declined",
                payment_intent_id=confirmation.payment_intent_id,
                decline_code=confirmation.decline_code,
            )
            raise PaymentDeclinedError(
                confirmation.failure_reason or "Your payment was declined. Please try another payment method.",
                decline_code=confirmation.decline_code,
            )

        logger.info(
            "payment_pending",
            payment_intent_id=confirmation.payment_intent_id,
            status=confirmation.status,
        )
        raise PaymentAmbiguousError(
            "Your payment is being processed. We will update you once it completes.",
            status=confirmation.status,
        )

    async def submit_order(
        self,
        cart: Cart,
        shipping_address: ShippingAddress,
        billing_address: ShippingAddress | None,
        payment_intent_id: str,
        total_amount: float,
    ) -> str:
        """Record the order for a successful payment, exactly once per intent."""
        if payment_intent_id in self._submitted:
            logger.info("order_submission_deduplicated", payment_intent_id=payment_intent_id)
            return self._submitted[payment_intent_id]

        # Held until the order id is cached; later callers return from the cache without it
        lock = self._submit_locks.setdefault(payment_intent_id, asyncio.Lock())
        async with lock:
            if payment_intent_id in self._submitted:
                logger.info("order_submission_deduplicated", payment_intent_id=payment_intent_id)
                return self._submitted[payment_intent_id]

            request = OrderRequest(
                cart=cart,
                shipping_address=shipping_address,
                billing_address=billing_address,
                payment_intent_id=payment_intent_id,
                total_amount=total_amount,
            )
            order_id = await self._create_with_retries(request)
            self._submitted[payment_intent_id] = order_id
            self._submit_locks.pop(payment_intent_id, None)
            logger.info("order_submitted", order_id=order_id, payment_intent_id=payment_intent_id)
            return order_id

    async def _create_with_retries(self, request: OrderRequest) -> str:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._orders.create_order(
                    request,
                    idempotency_key=request.payment_intent_id,
                    user=self._current_user(),
                )
            except GatewayError as exc:
                if not exc.retryable or attempt >= self._submit_attempts:
                    logger.error(
                        "order_submission_failed",
                        payment_intent_id=request.payment_intent_id,
                        attempts=attempt,
                        error=exc.message,
                    )
                    raise OrderSubmissionError(request.payment_intent_id, exc.message, attempts=attempt) from exc

                logger.warning(
                    "order_submission_retry",
                    payment_intent_id=request.payment_intent_id,
                    attempt=attempt,
                    error=exc.message,
                )
                await asyncio.sleep(self._retry_delay * attempt)

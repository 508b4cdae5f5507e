"""Checkout store: drives a ``CheckoutSession`` from shipping to confirmation.

The store owns at most one live session. Every operation that awaits a
collaborator remembers the session id it started with and re-checks it when
the response arrives: if the shopper cancelled or restarted checkout in the
meantime, the late response never touches the new session. The single
exception is a payment that succeeded for a discarded session, whose order is
still recorded because the funds were captured.

A captured payment whose order could not be recorded is kept as the pending
order until an order id comes back. Its notice survives cancelling checkout
or emptying the cart, and its payment is never confirmed a second time.

The cart store is read through its snapshot, and watched through an item
slice subscription: if the cart empties mid-checkout the session is
abandoned and the view becomes ``empty_cart``.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import structlog
from protean.exceptions import ValidationError

from identity.profile.port import ProfileGateway
from identity.session import User
from ordering.cart.cart import Cart
from ordering.cart.store import CartStore
from ordering.checkout.address import ADDRESS_FIELDS, ShippingAddress, empty_draft, validate_shipping_address
from ordering.checkout.session import CheckoutSession, CheckoutStep, PaymentIntentRef
from payments.gateway.port import PaymentOutcome
from payments.orchestrator import PaymentOrchestrator
from shared.errors import (
    EmptyCartError,
    GatewayError,
    OrderSubmissionError,
    PaymentAmbiguousError,
    PaymentDeclinedError,
    StorefrontError,
)
from shared.pricing import DEFAULT_RULES, PriceBreakdown, PricingRules, summarize
from shared.state import Store

logger = structlog.get_logger(__name__)


class CheckoutView(Enum):
    CLOSED = "closed"
    SHIPPING = "shipping"
    PAYMENT = "payment"
    EMPTY_CART = "empty_cart"
    PAYMENT_STATUS = "payment_status"
    ORDER_CONFIRMATION = "order_confirmation"


@dataclass(frozen=True)
class Notice:
    """A message the UI must keep on screen until the shopper acts on it."""

    message: str
    reference: str
    dismissible: bool = False


@dataclass(frozen=True)
class _PendingOrder:
    session: CheckoutSession
    cart: Cart
    notice: Notice | None = None


@dataclass(frozen=True)
class CheckoutState:
    view: CheckoutView = CheckoutView.CLOSED
    session_id: str | None = None
    step: CheckoutStep | None = None
    shipping_draft: dict = field(default_factory=empty_draft)
    billing_same_as_shipping: bool = True
    billing_draft: dict = field(default_factory=empty_draft)
    field_errors: dict = field(default_factory=dict)
    payment_intent: PaymentIntentRef | None = None
    total_amount: float = 0.0
    summary: PriceBreakdown | None = None
    processing: bool = False
    error: str | None = None
    payment_status: str | None = None
    notice: Notice | None = None
    order_id: str | None = None


class CheckoutStore(Store[CheckoutState]):
    def __init__(
        self,
        cart: CartStore,
        orchestrator: PaymentOrchestrator,
        *,
        current_user: Callable[[], User | None] = lambda: None,
        profile: ProfileGateway | None = None,
        pricing: PricingRules = DEFAULT_RULES,
    ) -> None:
        super().__init__(CheckoutState())
        self._cart = cart
        self._orchestrator = orchestrator
        self._current_user = current_user
        self._profile = profile
        self._pricing = pricing

        self._session: CheckoutSession | None = None
        self._paid_cart: Cart | None = None
        self._pending: dict[str, _PendingOrder] = {}  # session id -> captured payment without an order
        self._unsubscribe_cart = cart.subscribe(self._on_cart_items_changed, selector=lambda state: state.cart.items)

    # -------------------------------------------------------------------
    # Session bookkeeping
    # -------------------------------------------------------------------
    @property
    def session(self) -> CheckoutSession | None:
        return self._session

    def _is_current(self, session_id: str) -> bool:
        return self._session is not None and self._session.id == session_id

    def _pending_for(self, session_id: str) -> _PendingOrder | None:
        return self._pending.get(session_id)

    def _latest_notice(self) -> Notice | None:
        notices = [pending.notice for pending in self._pending.values() if pending.notice is not None]
        return notices[-1] if notices else None

    def _require_session(self, *steps: CheckoutStep) -> CheckoutSession:
        if self._session is None:
            raise ValidationError({"session": ["Checkout has not been started"]})
        if self._session.current_step not in steps:
            allowed = ", ".join(step.value for step in steps)
            raise ValidationError(
                {"step": [f"Expected checkout step {allowed}, not {self._session.current_step.value}"]}
            )
        return self._session

    def _publish(self, **changes) -> None:
        session = self._session
        self._set_state(
            session_id=str(session.id) if session else None,
            step=session.current_step if session else None,
            payment_intent=session.payment_intent if session else None,
            total_amount=session.total_amount if session else 0.0,
            **changes,
        )

    def _abandon(self, view: CheckoutView, reason: str) -> None:
        if self._session is not None:
            logger.info("checkout_abandoned", session_id=self._session.id, reason=reason)
        self._session = None
        self._paid_cart = None
        self._publish(
            view=view,
            summary=None,
            processing=False,
            error=None,
            payment_status=None,
            field_errors={},
        )

    def _on_cart_items_changed(self, items, _previous) -> None:
        if items or self._session is None:
            return
        if self._session.current_step is CheckoutStep.CONFIRMATION:
            return
        if self._pending_for(self._session.id) is not None:
            return
        self._abandon(CheckoutView.EMPTY_CART, reason="cart_emptied")

    def close(self) -> None:
        """Detach from the cart store."""
        self._unsubscribe_cart()

    # -------------------------------------------------------------------
    # Shipping step
    # -------------------------------------------------------------------
    async def start(self) -> None:
        """Open a fresh session at the shipping step, discarding any previous one."""
        await self._cart.hydrate()
        cart = self._cart.snapshot()

        self._session = CheckoutSession.start()
        self._paid_cart = None
        user = self._current_user()
        draft = empty_draft()
        if user is not None:
            draft.update(first_name=user.first_name or "", last_name=user.last_name or "", email=user.email)

        logger.info("checkout_started", session_id=self._session.id, lines=len(cart))
        if cart.is_empty:
            self._abandon(CheckoutView.EMPTY_CART, reason="cart_empty")
            return

        self._publish(
            view=CheckoutView.SHIPPING,
            shipping_draft=draft,
            billing_same_as_shipping=True,
            billing_draft=empty_draft(),
            field_errors={},
            summary=summarize(cart.subtotal, self._pricing),
            processing=False,
            error=None,
            payment_status=None,
            order_id=None,
        )

    async def prefill_from_profile(self) -> None:
        """Copy the saved profile address into empty draft fields. Best effort."""
        user = self._current_user()
        if user is None or self._profile is None or self._session is None:
            return

        session_id = self._session.id
        try:
            saved = await self._profile.get_saved_address(user)
        except GatewayError as exc:
            logger.info("checkout_prefill_unavailable", error=exc.message)
            return

        if not saved or not self._is_current(session_id):
            return

        draft = dict(self.state.shipping_draft)
        for name in ADDRESS_FIELDS:
            if not draft.get(name) and saved.get(name):
                draft[name] = saved[name]
        self._set_state(shipping_draft=draft)

    def update_shipping(self, **fields) -> None:
        self._require_session(CheckoutStep.SHIPPING)
        draft, errors = self._edit_draft(self.state.shipping_draft, fields, prefix="")
        self._set_state(shipping_draft=draft, field_errors=errors)

    def set_billing_same_as_shipping(self, same: bool) -> None:
        self._require_session(CheckoutStep.SHIPPING)
        self._set_state(billing_same_as_shipping=same)

    def update_billing(self, **fields) -> None:
        self._require_session(CheckoutStep.SHIPPING)
        draft, errors = self._edit_draft(self.state.billing_draft, fields, prefix="billing_")
        self._set_state(billing_draft=draft, field_errors=errors)

    def _edit_draft(self, draft: dict, fields: dict, prefix: str) -> tuple[dict, dict]:
        unknown = sorted(set(fields) - set(ADDRESS_FIELDS))
        if unknown:
            raise ValidationError({name: ["Unknown address field"] for name in unknown})

        errors = {key: value for key, value in self.state.field_errors.items() if key[len(prefix) :] not in fields}
        return {**draft, **fields}, errors

    def _validated_addresses(self) -> tuple[ShippingAddress, ShippingAddress | None]:
        errors: dict[str, list[str]] = {}
        shipping = billing = None
        try:
            shipping = validate_shipping_address(self.state.shipping_draft)
        except ValidationError as exc:
            errors.update(exc.messages)

        if not self.state.billing_same_as_shipping:
            try:
                billing = validate_shipping_address(self.state.billing_draft)
            except ValidationError as exc:
                errors.update({f"billing_{name}": messages for name, messages in exc.messages.items()})

        if errors:
            self._set_state(field_errors=errors)
            raise ValidationError(errors)
        return shipping, billing

    async def proceed_to_payment(self, save_address: bool = False) -> None:
        """Validate the addresses, sync the cart and create the payment intent.

        The session only moves to the payment step once all of that succeeded.
        """
        session = self._require_session(CheckoutStep.SHIPPING)
        session_id = session.id

        if self._cart.snapshot().is_empty:
            self._abandon(CheckoutView.EMPTY_CART, reason="cart_empty")
            raise EmptyCartError()

        shipping, billing = self._validated_addresses()
        self._set_state(processing=True, error=None, field_errors={})

        try:
            if self._current_user() is not None:
                await self._cart.sync_cart_with_server()
            if not self._is_current(session_id):
                logger.info("checkout_response_discarded", session_id=session_id, stage="cart_sync")
                return

            cart = self._cart.snapshot()
            if cart.is_empty:
                self._abandon(CheckoutView.EMPTY_CART, reason="cart_empty")
                raise EmptyCartError()

            intent = await self._orchestrator.create_payment_intent(cart, shipping, billing)
        except StorefrontError as exc:
            if self._is_current(session_id):
                self._set_state(processing=False, error=exc.message)
            raise

        if not self._is_current(session_id):
            logger.info(
                "checkout_response_discarded",
                session_id=session_id,
                stage="payment_intent",
                payment_intent_id=intent.payment_intent_id,
            )
            return

        session.begin_payment(shipping, billing, intent)
        self._paid_cart = cart
        self._publish(
            view=CheckoutView.PAYMENT,
            summary=summarize(cart.subtotal, self._pricing),
            processing=False,
        )
        logger.info(
            "checkout_payment_ready",
            session_id=session_id,
            payment_intent_id=intent.payment_intent_id,
            amount=intent.amount,
        )

        if save_address:
            await self._save_address(shipping)

    async def _save_address(self, address: ShippingAddress) -> None:
        user = self._current_user()
        if user is None or self._profile is None:
            return
        try:
            await self._profile.save_shipping_address(user, address.as_draft())
        except GatewayError as exc:
            logger.info("checkout_address_not_saved", error=exc.message)

    # -------------------------------------------------------------------
    # Payment step
    # -------------------------------------------------------------------
    def back_to_shipping(self) -> None:
        session = self._require_session(CheckoutStep.PAYMENT)
        if self._pending_for(session.id) is not None:
            raise ValidationError({"payment": ["This payment was already taken; retry recording the order instead"]})
        session.back_to_shipping()
        self._paid_cart = None
        self._publish(view=CheckoutView.SHIPPING, error=None, payment_status=None)

    async def submit_payment(self, payment_details: dict) -> str:
        """Confirm the payment and record the order. Returns the order id.

        When the payment was already captured and only the order is missing,
        the order is recorded again without a second confirmation.
        """
        session = self._require_session(CheckoutStep.PAYMENT)
        session_id = session.id
        if self.state.processing:
            raise ValidationError({"payment": ["A payment is already being processed"]})

        pending = self._pending_for(session_id)
        if pending is not None:
            logger.info("checkout_payment_already_captured", session_id=session_id)
            self._set_state(processing=True, error=None)
            return await self._finalize(pending.session, pending.cart)

        if self._cart.snapshot().is_empty:
            self._abandon(CheckoutView.EMPTY_CART, reason="cart_empty")
            raise EmptyCartError()

        paid_cart = self._paid_cart
        self._set_state(processing=True, error=None)
        try:
            await self._orchestrator.confirm_payment(session.payment_intent.client_secret, payment_details)
        except PaymentDeclinedError as exc:
            if self._is_current(session_id):
                self._set_state(processing=False, error=exc.message)
            raise
        except PaymentAmbiguousError as exc:
            if self._is_current(session_id):
                self._set_state(
                    view=CheckoutView.PAYMENT_STATUS,
                    processing=False,
                    payment_status=exc.status or "unknown",
                    error=None,
                )
            raise

        return await self._finalize(session, paid_cart)

    async def check_payment_status(self) -> PaymentOutcome:
        """Re-query a payment whose outcome was unknown."""
        session = self._require_session(CheckoutStep.PAYMENT)
        session_id = session.id
        if self.state.view is not CheckoutView.PAYMENT_STATUS:
            raise ValidationError({"payment": ["No payment is awaiting a status check"]})
        paid_cart = self._paid_cart

        confirmation = await self._orchestrator.payment_status(session.payment_intent.client_secret)
        if not self._is_current(session_id):
            if confirmation.outcome is PaymentOutcome.SUCCEEDED:
                await self._finalize(session, paid_cart)
            return confirmation.outcome

        if confirmation.outcome is PaymentOutcome.SUCCEEDED:
            await self._finalize(session, paid_cart)
        elif confirmation.outcome is PaymentOutcome.DECLINED:
            self._set_state(
                view=CheckoutView.PAYMENT,
                payment_status=None,
                error=confirmation.failure_reason or "Your payment was declined. Please try another payment method.",
            )
        else:
            self._set_state(payment_status=confirmation.status)
        return confirmation.outcome

    async def retry_order_submission(self) -> str:
        """Try recording the order again after an ``OrderSubmissionError``.

        Works even when the shopper has since cancelled checkout, since the
        payment behind the notice was already captured.
        """
        notice = self.state.notice
        pending = next(
            (entry for entry in self._pending.values() if notice is not None and entry.notice == notice),
            None,
        )
        if pending is None:
            raise ValidationError({"order": ["There is no failed order submission to retry"]})
        if self.state.processing:
            raise ValidationError({"order": ["The order is already being submitted"]})

        self._set_state(processing=True, error=None)
        try:
            return await self._finalize(pending.session, pending.cart)
        finally:
            if not self._is_current(pending.session.id):
                self._set_state(processing=False)

    async def _finalize(self, session: CheckoutSession, paid_cart: Cart) -> str:
        session_id = session.id
        intent = session.payment_intent
        billing = None if session.billing_same_as_shipping else session.billing_address
        # The payment is captured from here on; keep what is needed to record the order
        self._pending.setdefault(session_id, _PendingOrder(session=session, cart=paid_cart))
        try:
            order_id = await self._orchestrator.submit_order(
                paid_cart,
                session.shipping_address,
                billing,
                intent.payment_intent_id,
                session.total_amount,
            )
        except OrderSubmissionError as exc:
            notice = Notice(message=exc.message, reference=exc.payment_intent_id)
            self._pending[session_id] = _PendingOrder(session=session, cart=paid_cart, notice=notice)
            if self._is_current(session_id):
                self._set_state(processing=False, error=exc.message, notice=notice)
            else:
                self._set_state(notice=notice)
            raise

        self._pending.pop(session_id, None)
        notice = self._latest_notice()

        if not self._is_current(session_id):
            logger.warning(
                "order_recorded_for_discarded_session",
                session_id=session_id,
                order_id=order_id,
                payment_intent_id=intent.payment_intent_id,
            )
            self._set_state(notice=notice)
            return order_id

        session.complete(order_id)
        logger.info("checkout_completed", session_id=session_id, order_id=order_id)

        # Reset the session before clearing the cart so the empty-cart watcher ignores it
        self._session = None
        self._paid_cart = None
        self._publish(
            view=CheckoutView.ORDER_CONFIRMATION,
            order_id=order_id,
            processing=False,
            error=None,
            payment_status=None,
            notice=notice,
            shipping_draft=empty_draft(),
            billing_draft=empty_draft(),
            billing_same_as_shipping=True,
        )
        self._cart.clear_cart()
        return order_id

    # -------------------------------------------------------------------
    # Leaving checkout
    # -------------------------------------------------------------------
    def cancel(self) -> None:
        """Abandon the current session (the shopper navigated away).

        A pending order and its notice outlive the session.
        """
        self._abandon(CheckoutView.CLOSED, reason="cancelled")

"""Error taxonomy for the cart and checkout engine.

Field-level validation failures use protean's ``ValidationError`` (its
``messages`` attribute maps field names to lists of messages). Everything
else raised by the stores, the orchestrator, or the adapters derives from
``StorefrontError`` so callers can tell recoverable failures from the
serious ones by type.

``HydrationPending`` is deliberately outside that hierarchy: it signals
"wait", not "something went wrong".
"""


class HydrationPending(Exception):
    """Cart state was read before durable storage finished loading."""

    def __init__(self, message: str = "Cart is still hydrating") -> None:
        super().__init__(message)


class StorefrontError(Exception):
    """Base class for storefront engine failures."""

    retryable: bool = False

    def __init__(self, message: str, *, retryable: bool | None = None) -> None:
        super().__init__(message)
        self.message = message
        if retryable is not None:
            self.retryable = retryable


class GatewayError(StorefrontError):
    """An external collaborator could not be reached or answered with an error.

    Raised by adapters only. ``status`` is the HTTP status when one was
    received, ``None`` for transport failures (timeouts, refused connections).
    """

    retryable = True

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        retryable: bool | None = None,
    ) -> None:
        if retryable is None:
            retryable = status is None or status >= 500 or status == 429
        super().__init__(message, retryable=retryable)
        self.status = status


class SyncError(StorefrontError):
    """Fetching or pushing the server cart failed. Local state is unchanged."""

    retryable = True


class PaymentSetupError(StorefrontError):
    """A payment intent could not be created."""

    retryable = True


class EmptyCartError(PaymentSetupError):
    """Checkout cannot progress because the cart has no items."""

    retryable = False

    def __init__(self, message: str = "Cart is empty. Cannot create payment intent.") -> None:
        super().__init__(message)


class PaymentDeclinedError(StorefrontError):
    """The gateway rejected the payment. The user may retry on the payment step."""

    retryable = True

    def __init__(self, message: str, *, decline_code: str | None = None) -> None:
        super().__init__(message)
        self.decline_code = decline_code


class PaymentAmbiguousError(StorefrontError):
    """The payment outcome is not known yet; send the user to a status view."""

    def __init__(self, message: str, *, status: str | None = None) -> None:
        super().__init__(message)
        self.status = status


class OrderSubmissionError(StorefrontError):
    """Payment succeeded but the order could not be recorded.

    Funds have already been captured, so this must always reach the user.
    """

    retryable = True

    def __init__(self, payment_intent_id: str, reason: str, *, attempts: int = 1) -> None:
        message = (
            "Your payment was taken but we could not record your order. "
            f"Please contact support with reference {payment_intent_id}."
        )
        super().__init__(message)
        self.payment_intent_id = payment_intent_id
        self.reason = reason
        self.attempts = attempts

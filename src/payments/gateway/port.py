"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakePaymentGateway (dev/test) and
StripeGateway (production) without changing any checkout code.

Adapters raise ``GatewayError`` when the gateway cannot be reached or
rejects the request outright; a declined or pending payment is a normal
``PaymentConfirmation`` whose ``outcome`` says so.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from ordering.cart.cart import Cart
from ordering.checkout.address import ShippingAddress


class PaymentOutcome(Enum):
    SUCCEEDED = "succeeded"
    PENDING = "pending"
    DECLINED = "declined"


_SUCCEEDED = {"succeeded"}
_PENDING = {"processing", "requires_action", "requires_capture", "requires_confirmation"}
_DECLINED = {"requires_payment_method", "canceled", "card_declined"}


def classify(status: str) -> PaymentOutcome:
    """Map a gateway status onto what the checkout should do next.

    Anything unrecognised is treated as pending: the money may have moved.
    """
    if status in _SUCCEEDED:
        return PaymentOutcome.SUCCEEDED
    if status in _DECLINED:
        return PaymentOutcome.DECLINED
    return PaymentOutcome.PENDING


@dataclass(frozen=True)
class IntentResult:
    """A payment intent created for a cart snapshot."""

    payment_intent_id: str
    client_secret: str
    amount: float


@dataclass(frozen=True)
class PaymentConfirmation:
    """State of a payment intent after confirmation or a status lookup."""

    payment_intent_id: str
    status: str
    failure_reason: str | None = None
    decline_code: str | None = None

    @property
    def outcome(self) -> PaymentOutcome:
        return classify(self.status)


def intent_id_from_secret(client_secret: str) -> str:
    """Client secrets look like ``pi_123_secret_abc``; the intent id is the prefix."""
    return client_secret.split("_secret_", 1)[0]


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    async def create_payment_intent(
        self,
        cart: Cart,
        shipping_address: ShippingAddress,
        billing_address: ShippingAddress | None = None,
    ) -> IntentResult:
        """Create an intent charging the total for ``cart``."""
        ...

    @abstractmethod
    async def confirm_payment(self, client_secret: str, payment_details: dict) -> PaymentConfirmation:
        """Confirm the intent with the shopper's payment method."""
        ...

    @abstractmethod
    async def retrieve_payment(self, client_secret: str) -> PaymentConfirmation:
        """Look up the current state of an intent."""
        ...

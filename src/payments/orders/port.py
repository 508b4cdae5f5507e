"""Order API port (abstract interface).

The order API records a paid cart as an order. ``create_order`` must be
idempotent on the supplied key (the payment intent id): the same key always
yields the same order, however many times it is sent.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from identity.session import User
from ordering.cart.cart import Cart
from ordering.checkout.address import ShippingAddress


@dataclass(frozen=True)
class OrderRequest:
    cart: Cart
    shipping_address: ShippingAddress
    billing_address: ShippingAddress | None
    payment_intent_id: str
    total_amount: float


@dataclass(frozen=True)
class OrderSummary:
    """One entry of a shopper's order history."""

    order_id: str
    status: str
    total_amount: float
    created_at: str | None = None
    item_count: int = 0


class OrderApi(ABC):
    @abstractmethod
    async def create_order(self, request: OrderRequest, *, idempotency_key: str, user: User | None = None) -> str:
        """Record the order and return its id."""
        ...

    @abstractmethod
    async def list_orders(self, user: User) -> list[OrderSummary]:
        """Orders placed by ``user``, newest first."""
        ...

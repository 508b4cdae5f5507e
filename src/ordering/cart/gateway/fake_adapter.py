"""In-memory server cart for development and testing.

Behaves like the storefront backend's ``/cart/sync`` endpoint: ``sync``
replaces the stored cart and every response
carries the server's current catalogue price for each line. It can be told
to fail, or to hold responses until released, so tests can exercise network
failures and in-flight races.
"""

import asyncio

from identity.session import User
from ordering.cart.cart import Cart
from ordering.cart.gateway.port import CartGateway
from shared.errors import GatewayError


class FakeCartGateway(CartGateway):
    """Configurable fake server cart."""

    def __init__(self) -> None:
        self.carts: dict[str, Cart] = {}
        self.prices: dict[str, float] = {}  # product_variant_id -> current catalogue price
        self.should_succeed: bool = True
        self.failure_reason: str = "Failed to sync cart"
        self.gate: asyncio.Event | None = None
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Failed to sync cart") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def hold(self) -> asyncio.Event:
        """Make every subsequent call wait until the returned event is set."""
        self.gate = asyncio.Event()
        return self.gate

    def set_price(self, product_variant_id: str, price: float) -> None:
        self.prices[product_variant_id] = price

    async def _respond(self, method: str, user: User, cart: Cart | None = None) -> None:
        self.calls.append(
            {
                "method": method,
                "user_id": user.id,
                "items": [item.key for item in cart.items] if cart is not None else None,
            }
        )
        if self.gate is not None:
            await self.gate.wait()
        if not self.should_succeed:
            raise GatewayError(self.failure_reason, status=500)

    def _stored(self, user: User) -> Cart:
        cart = self.carts.get(user.id, Cart())
        if not self.prices:
            return cart
        return Cart(
            items=tuple(
                item.with_price(self.prices[item.product_variant_id])
                if item.product_variant_id in self.prices
                else item
                for item in cart.items
            )
        )

    async def fetch_cart(self, user: User) -> Cart:
        await self._respond("fetch", user)
        return self._stored(user)

    async def sync_cart(self, user: User, cart: Cart) -> Cart:
        await self._respond("sync", user, cart)
        self.carts[user.id] = cart
        return self._stored(user)

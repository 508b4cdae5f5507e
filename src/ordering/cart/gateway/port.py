"""Server cart gateway port (abstract interface).

The storefront backend owns the authoritative cart of every signed-in user.
Adapters translate transport failures into ``GatewayError``; the cart store
turns those into ``SyncError`` for its callers.
"""

from abc import ABC, abstractmethod

from identity.session import User
from ordering.cart.cart import Cart


class CartGateway(ABC):
    """Abstract server cart interface, scoped to one user per call."""

    @abstractmethod
    async def fetch_cart(self, user: User) -> Cart:
        """Return the server's cart for ``user``."""
        ...

    @abstractmethod
    async def sync_cart(self, user: User, cart: Cart) -> Cart:
        """Replace the server cart with ``cart`` and return what the server stored."""
        ...

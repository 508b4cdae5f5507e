"""Server cart gateway backed by the storefront backend's ``/cart`` endpoints.

``POST /cart/sync`` takes ``{items, action}`` where action is ``fetch``
or ``sync`` (replace), and always answers with the stored cart.
"""

from identity.session import User
from ordering.cart.cart import Cart
from ordering.cart.gateway.port import CartGateway
from ordering.cart.schemas import CartPayload, CartSyncRequest
from shared.http import HttpClient, auth_cookies


class HttpCartGateway(CartGateway):
    def __init__(self, base_url: str, *, timeout: float = 10.0) -> None:
        self.client = HttpClient(base_url, timeout=timeout)

    async def _sync(self, user: User, cart: Cart, action: str) -> Cart:
        request = CartSyncRequest(items=CartPayload.from_cart(cart).dump(), action=action)
        body = await self.client.post(
            "/cart/sync",
            json=request.model_dump(),
            cookies=auth_cookies(user),
        )
        return CartPayload.model_validate(body).to_cart()

    async def fetch_cart(self, user: User) -> Cart:
        return await self._sync(user, Cart(), "fetch")

    async def sync_cart(self, user: User, cart: Cart) -> Cart:
        return await self._sync(user, cart, "sync")

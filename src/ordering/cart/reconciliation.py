"""Cart reconciliation on identity changes.

Listens for ``IdentityChanged`` on the message bus. When a shopper signs in
(or switches accounts) the cart store is put into ``switching`` before any
await, so no view ever renders an empty cart for the brief moment between
the old identity's cart and the new one's. Sign-out leaves the cart alone.
"""

from enum import Enum

import structlog

from identity.session import IdentityChanged
from ordering.cart.store import CartStore
from shared.errors import SyncError
from shared.state import MessageBus

logger = structlog.get_logger(__name__)


class ReconcilePolicy(Enum):
    REPLACE = "replace"  # the server cart wins outright
    MERGE = "merge"  # guest lines are folded into the server cart


class CartReconciler:
    def __init__(self, cart: CartStore, policy: ReconcilePolicy = ReconcilePolicy.REPLACE) -> None:
        self._cart = cart
        self._policy = policy

    def attach(self, bus: MessageBus) -> None:
        bus.register(IdentityChanged, self.on_identity_changed)

    def detach(self, bus: MessageBus) -> None:
        bus.unregister(IdentityChanged, self.on_identity_changed)

    async def on_identity_changed(self, message: IdentityChanged) -> None:
        if not message.signed_in:
            logger.debug("cart_reconcile_skipped", reason="signed_out")
            return

        self._cart.begin_switch()
        try:
            await self._cart.hydrate()
            # Only a guest cart is folded in; on an account switch the local cart belongs to the previous account
            guest_cart = self._cart.state.cart if message.previous is None else None
            await self._cart.fetch_cart()
            if self._policy is ReconcilePolicy.MERGE and guest_cart is not None and not guest_cart.is_empty:
                self._cart.merge_items(guest_cart)
                await self._cart.sync_cart_with_server()
            logger.info(
                "cart_reconciled",
                user_id=message.current.id,
                policy=self._policy.value,
                lines=len(self._cart.state.cart),
            )
        except SyncError as exc:
            # The store kept the local cart and exposes the error in state.sync_error
            logger.warning("cart_reconcile_failed", user_id=message.current.id, error=exc.message)
        finally:
            self._cart.end_switch()

"""Persisted cart store: the shopper's cart across reloads and identity changes.

Two-phase design: every mutation is applied locally (and persisted) right
away, then reconciled with the server cart in the background when the
shopper is signed in. Server failures never roll local state back; they are
recorded in ``state.sync_error`` for the UI and retried on the next push.

Mutations that land while the authoritative cart is still loading (before
hydration finishes, or while ``fetch_cart`` is in flight) are journaled and
replayed on top of the loaded cart, so a racing "add to cart" is never lost.
"""

import asyncio
from collections.abc import Callable
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

import structlog
from protean.exceptions import ValidationError

from identity.session import User
from ordering.cart.cart import Cart, CartItem, PriceChange, price_changes
from ordering.cart.gateway.port import CartGateway
from ordering.cart.storage import CartStorage, decode_cart, encode_cart
from shared.errors import GatewayError, HydrationPending, SyncError
from shared.pricing import DEFAULT_RULES, PriceBreakdown, PricingRules, summarize
from shared.state import Store

logger = structlog.get_logger(__name__)


class CartStatus(Enum):
    LOADING = "loading"
    SWITCHING = "switching"
    EMPTY = "empty"
    READY = "ready"


@dataclass(frozen=True)
class CartState:
    cart: Cart = field(default_factory=Cart)
    hydrated: bool = False
    switching: bool = False
    syncing: bool = False
    sync_error: str | None = None
    price_changes: tuple[PriceChange, ...] = ()

    @property
    def items(self) -> tuple[CartItem, ...]:
        return self.cart.items

    @property
    def status(self) -> CartStatus:
        """What the UI may show. Never ``EMPTY`` while loading or switching accounts."""
        if not self.hydrated:
            return CartStatus.LOADING
        if self.switching:
            return CartStatus.SWITCHING
        if self.cart.is_empty:
            return CartStatus.EMPTY
        return CartStatus.READY


class CartStore(Store[CartState]):
    def __init__(
        self,
        storage: CartStorage,
        gateway: CartGateway,
        current_user: Callable[[], User | None] = lambda: None,
        *,
        auto_sync: bool = True,
        pricing: PricingRules = DEFAULT_RULES,
    ) -> None:
        super().__init__(CartState())
        self._storage = storage
        self._gateway = gateway
        self._current_user = current_user
        self._auto_sync = auto_sync
        self._pricing = pricing

        self._journal: list[Callable[[Cart], Cart]] = []
        self._fetches_in_flight = 0
        self._requests_in_flight = 0
        self._hydration_lock = asyncio.Lock()

        self._sync_task: asyncio.Task | None = None
        self._sync_requested = False
        self._sync_deferred = False

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    @property
    def is_hydrated(self) -> bool:
        return self.state.hydrated

    def get_total_items(self) -> int:
        return self.state.cart.total_items

    def get_total_price(self) -> float:
        return self.state.cart.subtotal

    def snapshot(self) -> Cart:
        """The current cart, for computations that must not run on unhydrated state."""
        if not self.state.hydrated:
            raise HydrationPending()
        return self.state.cart

    def summary(self) -> PriceBreakdown:
        return summarize(self.snapshot().subtotal, self._pricing)

    # -------------------------------------------------------------------
    # Local mutations
    # -------------------------------------------------------------------
    def add_item(self, item: CartItem) -> None:
        self._mutate(lambda cart: cart.add_item(item), "cart_item_added", item_id=item.key, quantity=item.quantity)

    def update_quantity(self, item_id: str, new_quantity: int) -> None:
        """Set a line's quantity. Quantities below 1 raise ``ValidationError``; use ``remove_item``."""
        self._mutate(
            lambda cart: cart.update_item_quantity(item_id, new_quantity),
            "cart_quantity_updated",
            item_id=item_id,
            quantity=new_quantity,
        )

    def remove_item(self, item_id: str) -> None:
        self._mutate(lambda cart: cart.remove_item(item_id), "cart_item_removed", item_id=item_id)

    def clear_cart(self) -> None:
        self._mutate(lambda cart: cart.cleared(), "cart_cleared")

    def merge_items(self, other: Cart) -> None:
        """Fold another cart's lines into this one (guest cart absorbed at sign-in)."""
        self._mutate(lambda cart: cart.merged_with(other), "cart_merged", merged_lines=len(other))

    def acknowledge_price_changes(self) -> None:
        self._set_state(price_changes=())

    def _mutate(self, operation: Callable[[Cart], Cart], event: str, **log_fields) -> None:
        current = self.state.cart
        updated = operation(current)  # raises before anything changes
        if self._journaling:
            self._journal.append(operation)
        if updated == current:
            return

        self._set_state(cart=updated)
        logger.debug(event, **log_fields)
        self._persist()
        self._schedule_sync()

    @property
    def _journaling(self) -> bool:
        return not self.state.hydrated or self._fetches_in_flight > 0

    def _replay(self, base: Cart) -> Cart:
        cart = base
        for operation in self._journal:
            try:
                cart = operation(cart)
            except ValidationError as exc:
                # e.g. a quantity update for a line the server cart does not have
                logger.info("cart_journal_entry_skipped", errors=exc.messages)
        return cart

    # -------------------------------------------------------------------
    # Durable storage
    # -------------------------------------------------------------------
    async def hydrate(self) -> None:
        """Load the persisted cart. Safe to call repeatedly; only the first call reads."""
        async with self._hydration_lock:
            if self.state.hydrated:
                return

            try:
                record = await asyncio.to_thread(self._storage.read)
            except OSError as exc:
                logger.warning("cart_storage_unreadable", error=str(exc))
                record = None

            stored = decode_cart(record)
            cart = self._replay(stored)
            self._journal.clear()
            self._set_state(cart=cart, hydrated=True)
            self._persist()
            logger.info("cart_hydrated", lines=len(cart), total_items=cart.total_items)

    def _persist(self) -> None:
        if not self.state.hydrated:
            return
        try:
            self._storage.write(encode_cart(self.state.cart))
        except OSError as exc:
            logger.error("cart_persist_failed", error=str(exc))

    # -------------------------------------------------------------------
    # Server reconciliation
    # -------------------------------------------------------------------
    @contextmanager
    def _network(self):
        self._requests_in_flight += 1
        self._set_state(syncing=True)
        try:
            yield
        finally:
            self._requests_in_flight -= 1
            self._set_state(syncing=self._requests_in_flight > 0)

    def _same_user(self, user: User) -> bool:
        current = self._current_user()
        return current is not None and current.id == user.id

    async def fetch_cart(self) -> None:
        """Replace the local cart with the server's cart for the signed-in user.

        On failure raises ``SyncError`` and leaves the local cart untouched.
        Guests have no server cart, so this is a no-op for them.
        """
        user = self._current_user()
        if user is None:
            logger.debug("cart_fetch_skipped", reason="guest")
            return

        await self.hydrate()

        if self._fetches_in_flight == 0:
            self._journal.clear()
        self._fetches_in_flight += 1
        try:
            with self._network():
                server_cart = await self._gateway.fetch_cart(user)
        except GatewayError as exc:
            self._set_state(sync_error=exc.message)
            logger.warning("cart_fetch_failed", user_id=user.id, error=exc.message)
            raise SyncError(f"Could not load your cart: {exc.message}") from exc
        finally:
            self._fetches_in_flight -= 1

        journaled = bool(self._journal)
        if not self._same_user(user):
            logger.info("cart_fetch_discarded", user_id=user.id, reason="identity_changed")
        else:
            local = self.state.cart
            cart = self._replay(server_cart)
            self._set_state(
                cart=cart,
                sync_error=None,
                price_changes=self.state.price_changes + price_changes(local, server_cart),
            )
            self._persist()
            logger.info("cart_fetched", user_id=user.id, lines=len(server_cart), replayed=len(self._journal))

        if self._fetches_in_flight == 0:
            self._journal.clear()
            if journaled:
                self._sync_deferred = True
            self._flush_deferred_sync()

    async def sync_cart_with_server(self) -> None:
        """Push the full local cart to the server (replace semantics, so idempotent).

        Raises ``SyncError`` on failure; the local cart is kept as is.
        """
        user = self._current_user()
        if user is None:
            logger.debug("cart_sync_skipped", reason="guest")
            return

        await self.hydrate()

        pushed = self.state.cart
        try:
            with self._network():
                stored = await self._gateway.sync_cart(user, pushed)
        except GatewayError as exc:
            self._set_state(sync_error=exc.message)
            logger.warning("cart_sync_failed", user_id=user.id, error=exc.message)
            raise SyncError(f"Could not save your cart: {exc.message}") from exc

        if not self._same_user(user):
            logger.info("cart_sync_discarded", user_id=user.id, reason="identity_changed")
            return

        if self.state.cart != pushed:
            # Newer local edits exist; they will be pushed by the next sync
            self._set_state(sync_error=None)
            return

        self._sync_deferred = False
        self._set_state(
            cart=stored,
            sync_error=None,
            price_changes=self.state.price_changes + price_changes(pushed, stored),
        )
        self._persist()
        logger.debug("cart_synced", user_id=user.id, lines=len(stored))

    # -------------------------------------------------------------------
    # Account switching (driven by the reconciler)
    # -------------------------------------------------------------------
    def begin_switch(self) -> None:
        self._set_state(switching=True)

    def end_switch(self) -> None:
        self._set_state(switching=False)
        self._flush_deferred_sync()

    # -------------------------------------------------------------------
    # Background push
    # -------------------------------------------------------------------
    def _schedule_sync(self) -> None:
        if not self._auto_sync or not self.state.hydrated or self._current_user() is None:
            return
        if self.state.switching or self._fetches_in_flight > 0:
            self._sync_deferred = True
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (synchronous caller); the next explicit sync pushes it
            return

        if self._sync_task is not None and not self._sync_task.done():
            self._sync_requested = True
            return
        self._sync_task = loop.create_task(self._background_sync())

    def _flush_deferred_sync(self) -> None:
        if self._sync_deferred and not self.state.switching and self._fetches_in_flight == 0:
            self._sync_deferred = False
            self._schedule_sync()

    async def _background_sync(self) -> None:
        while True:
            self._sync_requested = False
            try:
                await self.sync_cart_with_server()
            except SyncError as exc:
                # Already recorded in state.sync_error for the UI
                logger.info("cart_background_sync_failed", error=exc.message)
            if not self._sync_requested:
                return

    async def wait_for_background_sync(self) -> None:
        if self._sync_task is not None:
            await self._sync_task

"""SoleStream storefront engine: composition root.

Wires the bounded contexts together for one shopper session:

    IdentityStore ──IdentityChanged──▶ CartReconciler ──▶ CartStore
                                                            ▲
    CheckoutStore ──snapshot / item subscription────────────┘
         │
         └──▶ PaymentOrchestrator ──▶ PaymentGateway, OrderApi

Usage:
    storefront = build_storefront()
    await storefront.cart.hydrate()
    await storefront.identity.sign_in(user)
"""

from dataclasses import dataclass
from pathlib import Path

import structlog

from identity.profile import get_profile_gateway
from identity.profile.port import ProfileGateway
from identity.session import IdentityStore, User
from ordering.cart.gateway import get_cart_gateway
from ordering.cart.gateway.port import CartGateway
from ordering.cart.reconciliation import CartReconciler, ReconcilePolicy
from ordering.cart.storage import CartStorage, JsonFileCartStorage
from ordering.cart.store import CartStore
from ordering.checkout.store import CheckoutStore
from ordering.domain import ordering
from payments.gateway import get_gateway
from payments.gateway.port import PaymentGateway
from payments.orchestrator import PaymentOrchestrator
from payments.orders import get_order_api
from payments.orders.port import OrderApi, OrderSummary
from shared.config import Settings, get_settings
from shared.logging import configure_logging
from shared.pricing import PricingRules
from shared.state import MessageBus

logger = structlog.get_logger(__name__)

_initialized = False


def bootstrap(settings: Settings) -> None:
    """Initialise logging and the ordering domain once per process."""
    global _initialized
    if _initialized:
        return
    if settings.configure_logging:
        configure_logging(settings.log_dir)
    ordering.init()
    _initialized = True


@dataclass
class Storefront:
    bus: MessageBus
    identity: IdentityStore
    cart: CartStore
    reconciler: CartReconciler
    checkout: CheckoutStore
    orchestrator: PaymentOrchestrator
    orders: OrderApi

    async def sign_out(self, clear_cart: bool = False) -> None:
        """Sign the shopper out. The cart is kept unless ``clear_cart`` is set."""
        self.checkout.cancel()
        await self.identity.sign_out()
        if clear_cart:
            self.cart.clear_cart()

    async def order_history(self) -> list[OrderSummary]:
        user = self.identity.current_user()
        if user is None:
            return []
        return await self.orders.list_orders(user)

    def close(self) -> None:
        self.checkout.close()
        self.reconciler.detach(self.bus)


def build_storefront(
    settings: Settings | None = None,
    *,
    storage: CartStorage | None = None,
    cart_gateway: CartGateway | None = None,
    payment_gateway: PaymentGateway | None = None,
    order_api: OrderApi | None = None,
    profile: ProfileGateway | None = None,
    user: User | None = None,
) -> Storefront:
    """Assemble the stores for one shopper. Collaborators default to the configured adapters."""
    settings = settings or get_settings()
    bootstrap(settings)
    pricing = PricingRules.from_settings(settings)

    bus = MessageBus()
    identity = IdentityStore(bus, user=user)
    cart = CartStore(
        storage or JsonFileCartStorage(Path(settings.cart_storage_path)),
        cart_gateway or get_cart_gateway(),
        identity.current_user,
        auto_sync=settings.auto_sync_cart,
        pricing=pricing,
    )
    reconciler = CartReconciler(cart, ReconcilePolicy(settings.reconcile_policy))
    reconciler.attach(bus)

    orders = order_api or get_order_api()
    orchestrator = PaymentOrchestrator(
        payment_gateway or get_gateway(),
        orders,
        current_user=identity.current_user,
        submit_attempts=settings.order_submit_attempts,
        retry_delay=settings.order_submit_retry_delay,
    )
    checkout = CheckoutStore(
        cart,
        orchestrator,
        current_user=identity.current_user,
        profile=profile or get_profile_gateway(),
        pricing=pricing,
    )

    logger.info(
        "storefront_built",
        environment=settings.environment,
        reconcile_policy=settings.reconcile_policy,
        auto_sync=settings.auto_sync_cart,
    )
    return Storefront(
        bus=bus,
        identity=identity,
        cart=cart,
        reconciler=reconciler,
        checkout=checkout,
        orchestrator=orchestrator,
        orders=orders,
    )


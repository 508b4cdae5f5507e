"""In-memory order API for development and testing.

Honours idempotency keys like the real backend, and can be told to fail a
number of times before succeeding to exercise retry handling.
"""

from datetime import UTC, datetime
from uuid import uuid4

from identity.session import User
from payments.orders.port import OrderApi, OrderRequest, OrderSummary
from shared.errors import GatewayError


class FakeOrderApi(OrderApi):
    def __init__(self) -> None:
        self.orders: dict[str, dict] = {}  # idempotency key -> stored order
        self.should_succeed: bool = True
        self.failure_reason: str = "Order service unavailable"
        self.failure_status: int = 503
        self.fail_times: int = 0
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Order service unavailable",
        *,
        status: int = 503,
        fail_times: int = 0,
    ) -> None:
        """Configure behavior at runtime.

        With ``fail_times`` set, the next ``fail_times`` calls fail and later
        ones succeed regardless of ``should_succeed``.
        """
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.failure_status = status
        self.fail_times = fail_times

    async def create_order(self, request: OrderRequest, *, idempotency_key: str, user: User | None = None) -> str:
        self.calls.append(
            {
                "method": "create_order",
                "idempotency_key": idempotency_key,
                "payment_intent_id": request.payment_intent_id,
                "user_id": user.id if user else None,
            }
        )
        if self.fail_times > 0:
            self.fail_times -= 1
            raise GatewayError(self.failure_reason, status=self.failure_status)
        if not self.should_succeed and not self.orders.get(idempotency_key):
            raise GatewayError(self.failure_reason, status=self.failure_status)

        existing = self.orders.get(idempotency_key)
        if existing is not None:
            return existing["order_id"]

        order_id = f"ord_{uuid4().hex[:12]}"
        self.orders[idempotency_key] = {
            "order_id": order_id,
            "user_id": user.id if user else None,
            "payment_intent_id": request.payment_intent_id,
            "total_amount": request.total_amount,
            "item_count": request.cart.total_items,
            "created_at": datetime.now(UTC).isoformat(),
        }
        return order_id

    async def list_orders(self, user: User) -> list[OrderSummary]:
        self.calls.append({"method": "list_orders", "user_id": user.id})
        if not self.should_succeed:
            raise GatewayError(self.failure_reason, status=self.failure_status)
        orders = [order for order in self.orders.values() if order["user_id"] == user.id]
        orders.sort(key=lambda order: order["created_at"], reverse=True)
        return [
            OrderSummary(
                order_id=order["order_id"],
                status="paid",
                total_amount=order["total_amount"],
                created_at=order["created_at"],
                item_count=order["item_count"],
            )
            for order in orders
        ]

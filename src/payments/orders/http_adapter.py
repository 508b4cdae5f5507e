"""Order API backed by the storefront backend.

``POST /checkout/create-order`` records a paid cart (guests allowed; the
``token`` cookie attaches the order to an account). ``GET /user/orders``
returns the signed-in shopper's history.
"""

from identity.session import User
from payments.orders.port import OrderApi, OrderRequest, OrderSummary
from payments.schemas import CheckoutRequest, CreateOrderRequest, CreateOrderResponse, OrderHistoryResponse
from shared.http import HttpClient, auth_cookies


class HttpOrderApi(OrderApi):
    def __init__(self, base_url: str, *, timeout: float = 10.0) -> None:
        self.client = HttpClient(base_url, timeout=timeout)

    async def create_order(self, request: OrderRequest, *, idempotency_key: str, user: User | None = None) -> str:
        checkout = CheckoutRequest.build(request.cart, request.shipping_address, request.billing_address)
        payload = CreateOrderRequest(
            **checkout.model_dump(),
            payment_intent_id=request.payment_intent_id,
            total_amount=request.total_amount,
        )
        body = await self.client.post(
            "/checkout/create-order",
            json=payload.dump(),
            headers={"Idempotency-Key": idempotency_key},
            cookies=auth_cookies(user),
        )
        return CreateOrderResponse.model_validate(body).order_id

    async def list_orders(self, user: User) -> list[OrderSummary]:
        body = await self.client.get("/user/orders", cookies=auth_cookies(user))
        history = OrderHistoryResponse.model_validate(body)
        return [
            OrderSummary(
                order_id=order.id,
                status=order.status,
                total_amount=order.total_amount,
                created_at=order.created_at,
                item_count=sum(int(item.get("quantity", 0)) for item in order.items),
            )
            for order in history.orders
        ]

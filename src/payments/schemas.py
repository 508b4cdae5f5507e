"""Pydantic wire schemas for the checkout and order endpoints.

These are external contracts: camelCase JSON as the storefront backend and
Stripe speak it, converted to and from domain objects at the edge.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ordering.cart.cart import Cart
from ordering.cart.schemas import CartPayload
from ordering.checkout.address import ShippingAddress


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class AddressSchema(_CamelModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = "US"

    @classmethod
    def from_address(cls, address: ShippingAddress) -> "AddressSchema":
        return cls(**address.as_draft())


class CheckoutRequest(_CamelModel):
    items: list[dict]
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None

    @classmethod
    def build(
        cls,
        cart: Cart,
        shipping_address: ShippingAddress,
        billing_address: ShippingAddress | None = None,
    ) -> "CheckoutRequest":
        return cls(
            items=CartPayload.from_cart(cart).dump(),
            shipping_address=AddressSchema.from_address(shipping_address),
            billing_address=AddressSchema.from_address(billing_address) if billing_address else None,
        )


class PaymentIntentResponse(_CamelModel):
    client_secret: str
    payment_intent_id: str
    total_amount: float = Field(ge=0)


class CreateOrderRequest(CheckoutRequest):
    payment_intent_id: str
    total_amount: float


class CreateOrderResponse(_CamelModel):
    order_id: str


class OrderSummarySchema(_CamelModel):
    id: str
    status: str = "pending"
    total_amount: float = 0.0
    created_at: str | None = None
    items: list[dict] = Field(default_factory=list)


class OrderHistoryResponse(_CamelModel):
    orders: list[OrderSummarySchema] = Field(default_factory=list)


class StripeIntentSchema(BaseModel):
    """The subset of a Stripe PaymentIntent the storefront reads (snake_case on the wire)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: str
    last_payment_error: dict | None = None

    @property
    def failure_reason(self) -> str | None:
        if not self.last_payment_error:
            return None
        return self.last_payment_error.get("message")

    @property
    def decline_code(self) -> str | None:
        if not self.last_payment_error:
            return None
        return self.last_payment_error.get("decline_code") or self.last_payment_error.get("code")

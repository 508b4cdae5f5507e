"""Pydantic wire schemas for cart payloads.

These are external contracts (anti-corruption layer) shared by the server
cart gateway and durable storage: camelCase JSON as the storefront backend
speaks it, converted to and from ``CartItem`` value objects at the edge.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ordering.cart.cart import Cart, CartItem


class CartItemSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str | None = None
    product_id: str
    product_variant_id: str
    name: str
    price: float = Field(ge=0)
    quantity: int = Field(ge=1)
    size: str = ""
    color: str = ""
    image: str | None = ""

    @field_validator("product_id", "product_variant_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value):
        return str(value) if isinstance(value, int) else value

    @classmethod
    def from_item(cls, item: CartItem) -> "CartItemSchema":
        return cls(
            id=item.key,
            product_id=item.product_id,
            product_variant_id=item.product_variant_id,
            name=item.name,
            price=item.price,
            quantity=item.quantity,
            size=item.size or "",
            color=item.color or "",
            image=item.image or "",
        )

    def to_item(self) -> CartItem:
        return CartItem(
            product_id=self.product_id,
            product_variant_id=self.product_variant_id,
            name=self.name,
            price=self.price,
            quantity=self.quantity,
            size=self.size,
            color=self.color,
            image=self.image or "",
        )


class CartPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: list[CartItemSchema] = Field(default_factory=list)

    @classmethod
    def from_cart(cls, cart: Cart) -> "CartPayload":
        return cls(items=[CartItemSchema.from_item(item) for item in cart.items])

    def to_cart(self) -> Cart:
        cart = Cart()
        for schema in self.items:
            cart = cart.add_item(schema.to_item())
        return cart

    def dump(self) -> list[dict]:
        return [item.model_dump(by_alias=True) for item in self.items]


class CartSyncRequest(BaseModel):
    items: list[dict] = Field(default_factory=list)
    action: str = Field("sync", pattern="^(fetch|sync)$")

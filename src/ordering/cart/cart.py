"""Shopping cart model: line items and the immutable cart that holds them.

A ``CartItem`` is identified by product variant, selected size and selected
colour. Its unit price is a snapshot taken when the shopper added it; the
catalogue is never consulted again on render.

``Cart`` is an immutable ordered collection: every mutation returns a new
cart. The store swaps whole carts in and out, which keeps snapshots handed to
checkout stable and makes "did anything change?" a plain equality check.
"""

from dataclasses import dataclass

from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String

from ordering.domain import ordering


def item_key(product_variant_id, size, color) -> str:
    """Composite identity of a cart line."""
    return f"{product_variant_id}-{size}-{color}"


@ordering.value_object
class CartItem:
    product_id = Identifier(required=True)
    product_variant_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    size = String(max_length=50, default="")
    color = String(max_length=50, default="")
    image = String(max_length=2048, default="")

    @property
    def key(self) -> str:
        return item_key(self.product_variant_id, self.size or "", self.color or "")

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    def with_quantity(self, quantity: int) -> "CartItem":
        return self._replace(quantity=quantity)

    def with_price(self, price: float) -> "CartItem":
        return self._replace(price=price)

    def _replace(self, **changes) -> "CartItem":
        values = {
            "product_id": self.product_id,
            "product_variant_id": self.product_variant_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "size": self.size,
            "color": self.color,
            "image": self.image,
        }
        values.update(changes)
        return CartItem(**values)


@dataclass(frozen=True)
class PriceChange:
    """The server reported a different unit price than the one the shopper saw."""

    item_id: str
    name: str
    previous_price: float
    current_price: float


@dataclass(frozen=True)
class Cart:
    items: tuple[CartItem, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)

    def find(self, item_id: str) -> CartItem | None:
        return next((item for item in self.items if item.key == item_id), None)

    # -------------------------------------------------------------------
    # Mutations (each returns a new cart)
    # -------------------------------------------------------------------
    def add_item(self, item: CartItem) -> "Cart":
        """Add ``item``, or increase the quantity of the line with the same identity."""
        existing = self.find(item.key)
        if existing is None:
            return Cart(items=self.items + (item,))

        merged = existing.with_quantity(existing.quantity + item.quantity)
        return Cart(items=tuple(merged if line.key == item.key else line for line in self.items))

    def update_item_quantity(self, item_id: str, new_quantity: int) -> "Cart":
        """Set the quantity of an existing line.

        Quantities below 1 are rejected: deleting a line is what ``remove_item``
        is for.
        """
        if new_quantity < 1:
            raise ValidationError(
                {"quantity": ["Quantity must be at least 1. Use remove_item to delete an item."]}
            )

        existing = self.find(item_id)
        if existing is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})

        if existing.quantity == new_quantity:
            return self

        updated = existing.with_quantity(new_quantity)
        return Cart(items=tuple(updated if line.key == item_id else line for line in self.items))

    def remove_item(self, item_id: str) -> "Cart":
        """Remove a line. Removing an absent line is a no-op."""
        if self.find(item_id) is None:
            return self
        return Cart(items=tuple(line for line in self.items if line.key != item_id))

    def cleared(self) -> "Cart":
        return Cart()

    def merged_with(self, other: "Cart") -> "Cart":
        """Fold ``other``'s lines into this cart, summing quantities of shared lines."""
        merged = self
        for item in other.items:
            merged = merged.add_item(item)
        return merged


def price_changes(local: Cart, server: Cart) -> tuple[PriceChange, ...]:
    """Lines present in both carts whose unit price differs (server price wins)."""
    changes = []
    for server_item in server.items:
        local_item = local.find(server_item.key)
        if local_item is not None and local_item.price != server_item.price:
            changes.append(
                PriceChange(
                    item_id=server_item.key,
                    name=server_item.name,
                    previous_price=local_item.price,
                    current_price=server_item.price,
                )
            )
    return tuple(changes)

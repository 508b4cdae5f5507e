"""Shipping and billing addresses captured during checkout.

While the shopper types, the address is a plain draft dict. It only becomes
a ``ShippingAddress`` value object once every required field is present,
which is what gates progression to the payment step.
"""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import String

from ordering.domain import ordering

ADDRESS_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "address",
    "city",
    "state",
    "zip_code",
    "country",
)

REQUIRED_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "address",
    "city",
    "state",
    "zip_code",
    "country",
)


def empty_draft() -> dict[str, str]:
    draft = dict.fromkeys(ADDRESS_FIELDS, "")
    draft["country"] = "US"
    return draft


@ordering.value_object
class ShippingAddress:
    """A delivery (or billing) address, copied into the checkout session by value."""

    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    email = String(required=True, max_length=254)
    phone = String(max_length=30, default="")
    address = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    zip_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100, default="US")

    @invariant.post
    def email_has_single_at_sign(self):
        if self.email.count("@") != 1 or self.email.startswith("@") or self.email.endswith("@"):
            raise ValidationError({"email": ["Enter a valid email address"]})

    def as_draft(self) -> dict[str, str]:
        return {name: getattr(self, name) or "" for name in ADDRESS_FIELDS}


def validate_shipping_address(draft: dict) -> ShippingAddress:
    """Build a ``ShippingAddress`` from a draft or raise field-level ``ValidationError``."""
    errors: dict[str, list[str]] = {}
    for name in REQUIRED_FIELDS:
        value = draft.get(name)
        if value is None or not str(value).strip():
            errors[name] = ["is required"]
    if errors:
        raise ValidationError(errors)

    return ShippingAddress(**{name: str(draft.get(name) or "").strip() for name in ADDRESS_FIELDS})

"""Tests for shipping address validation."""

import pytest
from protean.exceptions import ValidationError

from ordering.checkout.address import ShippingAddress, empty_draft, validate_shipping_address


def test_empty_draft_defaults_country():
    draft = empty_draft()
    assert draft["country"] == "US"
    assert draft["first_name"] == ""


def test_valid_draft_builds_address(shipping_details):
    address = validate_shipping_address(shipping_details)
    assert isinstance(address, ShippingAddress)
    assert address.city == "Portland"
    assert address.zip_code == "97201"


def test_values_are_trimmed(shipping_details):
    address = validate_shipping_address({**shipping_details, "city": "  Portland  "})
    assert address.city == "Portland"


def test_missing_fields_are_reported_per_field(shipping_details):
    draft = {**shipping_details, "zip_code": "", "city": "   "}
    with pytest.raises(ValidationError) as exc:
        validate_shipping_address(draft)
    assert set(exc.value.messages) == {"zip_code", "city"}
    assert exc.value.messages["zip_code"] == ["is required"]


def test_phone_is_optional(shipping_details):
    address = validate_shipping_address({**shipping_details, "phone": ""})
    assert address.last_name == "Moss"


def test_malformed_email_is_rejected(shipping_details):
    with pytest.raises(ValidationError) as exc:
        validate_shipping_address({**shipping_details, "email": "alice.example.com"})
    assert "email" in exc.value.messages


def test_as_draft_round_trips(shipping_details):
    address = validate_shipping_address(shipping_details)
    assert address.as_draft() == shipping_details

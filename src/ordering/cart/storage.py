"""Durable client storage for the cart.

The whole cart lives in one versioned JSON record::

    {"version": 1, "state": {"items": [...]}}

Version 0 is the legacy browser persist format (items plus UI flags such as
``isOpen``, quantities sometimes missing); it is migrated on read. Records
with an unknown version, corrupt JSON, or individual lines that no longer
validate are discarded with a warning rather than crashing hydration.

Storage backends are synchronous, like browser local storage; the cart
store offloads reads to a worker thread during hydration.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import structlog
from protean.exceptions import ValidationError as DomainValidationError
from pydantic import ValidationError as SchemaValidationError

from ordering.cart.cart import Cart
from ordering.cart.schemas import CartItemSchema, CartPayload

logger = structlog.get_logger(__name__)

SCHEMA_VERSION = 1


class CartStorage(ABC):
    @abstractmethod
    def read(self) -> str | None:
        """Return the stored record, or None when nothing was saved yet."""
        ...

    @abstractmethod
    def write(self, record: str) -> None: ...


class InMemoryCartStorage(CartStorage):
    def __init__(self, record: str | None = None) -> None:
        self.record = record
        self.writes = 0

    def read(self) -> str | None:
        return self.record

    def write(self, record: str) -> None:
        self.record = record
        self.writes += 1


class JsonFileCartStorage(CartStorage):
    """Stores the record in a JSON file, replaced atomically on every write."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write(self, record: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(record)
            os.replace(tmp_path, self.path)
        except OSError:
            Path(tmp_path).unlink(missing_ok=True)
            raise


# ---------------------------------------------------------------------------
# Record codec
# ---------------------------------------------------------------------------
def encode_cart(cart: Cart) -> str:
    return json.dumps(
        {"version": SCHEMA_VERSION, "state": {"items": CartPayload.from_cart(cart).dump()}},
        separators=(",", ":"),
    )


def _migrate_v0(state: dict) -> dict:
    items = []
    for raw in state.get("items") or []:
        if not isinstance(raw, dict):
            continue
        item = dict(raw)
        item.setdefault("quantity", 1)
        if item.get("image") is None:
            item["image"] = ""
        items.append(item)
    return {"items": items}


_MIGRATIONS = {0: _migrate_v0}


def decode_cart(record: str | None) -> Cart:
    """Parse a stored record into a cart, migrating or discarding stale data."""
    if not record:
        return Cart()

    try:
        document = json.loads(record)
    except json.JSONDecodeError:
        logger.warning("cart_storage_corrupt", reason="invalid_json")
        return Cart()

    if not isinstance(document, dict) or not isinstance(document.get("state"), dict):
        logger.warning("cart_storage_corrupt", reason="unexpected_shape")
        return Cart()

    version = document.get("version", 0)
    state = document["state"]
    if version in _MIGRATIONS:
        logger.info("cart_storage_migrated", from_version=version, to_version=SCHEMA_VERSION)
        state = _MIGRATIONS[version](state)
    elif version != SCHEMA_VERSION:
        logger.warning("cart_storage_discarded", version=version, expected=SCHEMA_VERSION)
        return Cart()

    cart = Cart()
    for raw in state.get("items") or []:
        try:
            cart = cart.add_item(CartItemSchema.model_validate(raw).to_item())
        except (SchemaValidationError, DomainValidationError) as exc:
            logger.warning("cart_storage_item_dropped", item=raw, error=str(exc))
    return cart

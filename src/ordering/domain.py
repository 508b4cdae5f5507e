"""Ordering bounded context — shopping cart and checkout.

Holds the client-side cart (persisted locally, mirrored to the server once
the shopper signs in) and the checkout session that turns the cart into a
paid order.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)

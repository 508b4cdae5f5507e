"""Server cart gateway factory.

Provides get_cart_gateway() / set_cart_gateway() to swap implementations:
- FakeCartGateway for development and testing
- HttpCartGateway for the real storefront backend
"""

from ordering.cart.gateway.port import CartGateway
from shared.config import get_settings

_current_gateway: CartGateway | None = None


def get_cart_gateway() -> CartGateway:
    """Return the current cart gateway, built from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_settings()
        if settings.cart_gateway == "fake":
            from ordering.cart.gateway.fake_adapter import FakeCartGateway

            _current_gateway = FakeCartGateway()
        elif settings.cart_gateway == "http":
            from ordering.cart.gateway.http_adapter import HttpCartGateway

            _current_gateway = HttpCartGateway(settings.api_base_url, timeout=settings.request_timeout)
        else:
            raise ValueError(f"Unknown cart gateway: {settings.cart_gateway}")
    return _current_gateway


def set_cart_gateway(gateway: CartGateway) -> None:
    """Override the active cart gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_cart_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None

"""Order API factory.

Provides get_order_api() / set_order_api() to swap implementations:
- FakeOrderApi for development and testing
- HttpOrderApi for the real storefront backend
"""

from payments.orders.port import OrderApi
from shared.config import get_settings

_current_api: OrderApi | None = None


def get_order_api() -> OrderApi:
    """Return the current order API, built from settings on first use."""
    global _current_api
    if _current_api is None:
        settings = get_settings()
        if settings.order_api == "fake":
            from payments.orders.fake_adapter import FakeOrderApi

            _current_api = FakeOrderApi()
        elif settings.order_api == "http":
            from payments.orders.http_adapter import HttpOrderApi

            _current_api = HttpOrderApi(settings.api_base_url, timeout=settings.request_timeout)
        else:
            raise ValueError(f"Unknown order API: {settings.order_api}")
    return _current_api


def set_order_api(api: OrderApi) -> None:
    """Override the active order API (useful for tests)."""
    global _current_api
    _current_api = api


def reset_order_api() -> None:
    """Reset to default order API."""
    global _current_api
    _current_api = None

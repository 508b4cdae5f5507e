"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakePaymentGateway for development and testing
- StripeGateway for production
"""

from payments.gateway.port import PaymentGateway
from shared.config import get_settings
from shared.pricing import PricingRules

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, built from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_settings()
        if settings.payment_gateway == "fake":
            from payments.gateway.fake_adapter import FakePaymentGateway

            _current_gateway = FakePaymentGateway(PricingRules.from_settings(settings))
        elif settings.payment_gateway == "stripe":
            from payments.gateway.stripe_adapter import StripeGateway

            _current_gateway = StripeGateway(
                settings.api_base_url,
                settings.stripe_publishable_key,
                stripe_api_base=settings.stripe_api_base,
                return_url=settings.payment_return_url,
                timeout=settings.request_timeout,
            )
        else:
            raise ValueError(f"Unknown payment gateway: {settings.payment_gateway}")
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None

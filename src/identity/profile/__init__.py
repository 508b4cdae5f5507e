"""Profile gateway factory.

Provides get_profile_gateway() / set_profile_gateway() to swap implementations:
- FakeProfileGateway for development and testing
- HttpProfileGateway for the real storefront backend
"""

from identity.profile.port import ProfileGateway
from shared.config import get_settings

_current_gateway: ProfileGateway | None = None


def get_profile_gateway() -> ProfileGateway:
    """Return the current profile gateway, built from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_settings()
        if settings.profile_gateway == "fake":
            from identity.profile.fake_adapter import FakeProfileGateway

            _current_gateway = FakeProfileGateway()
        elif settings.profile_gateway == "http":
            from identity.profile.http_adapter import HttpProfileGateway

            _current_gateway = HttpProfileGateway(settings.api_base_url, timeout=settings.request_timeout)
        else:
            raise ValueError(f"Unknown profile gateway: {settings.profile_gateway}")
    return _current_gateway


def set_profile_gateway(gateway: ProfileGateway) -> None:
    """Override the active profile gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_profile_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None

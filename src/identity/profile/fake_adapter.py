"""In-memory profile store for development and testing."""

from identity.profile.port import ProfileGateway
from identity.session import User
from shared.errors import GatewayError


class FakeProfileGateway(ProfileGateway):
    def __init__(self) -> None:
        self.addresses: dict[str, dict[str, str]] = {}
        self.should_succeed: bool = True
        self.failure_reason: str = "Profile service unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Profile service unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    async def get_saved_address(self, user: User) -> dict[str, str] | None:
        self.calls.append({"method": "get_saved_address", "user_id": user.id})
        if not self.should_succeed:
            raise GatewayError(self.failure_reason, status=503)
        saved = self.addresses.get(user.id)
        return dict(saved) if saved else None

    async def save_shipping_address(self, user: User, address: dict[str, str]) -> None:
        self.calls.append({"method": "save_shipping_address", "user_id": user.id})
        if not self.should_succeed:
            raise GatewayError(self.failure_reason, status=503)
        self.addresses[user.id] = dict(address)

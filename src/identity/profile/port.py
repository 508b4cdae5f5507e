"""Profile gateway port: the shopper's saved shipping address.

Addresses cross this port as plain drafts (snake_case field names, as used
by the checkout forms) so the identity context stays independent of the
checkout's value objects.
"""

from abc import ABC, abstractmethod

from identity.session import User


class ProfileGateway(ABC):
    @abstractmethod
    async def get_saved_address(self, user: User) -> dict[str, str] | None:
        """The primary saved address, or None when the profile has none."""
        ...

    @abstractmethod
    async def save_shipping_address(self, user: User, address: dict[str, str]) -> None:
        """Store ``address`` as the profile's primary shipping address."""
        ...

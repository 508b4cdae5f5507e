"""Identity store: who is shopping right now.

Authentication tokens are issued elsewhere; this store only records the
signed-in user and announces transitions on the message bus so other
bounded contexts (the cart reconciler) can react explicitly.
"""

from dataclasses import dataclass

import structlog

from shared.logging import add_context, clear_context
from shared.state import MessageBus, Store

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class User:
    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    token: str | None = None


@dataclass(frozen=True)
class IdentityState:
    user: User | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


@dataclass(frozen=True)
class IdentityChanged:
    """Published whenever the signed-in user changes (including sign-out)."""

    previous: User | None
    current: User | None

    @property
    def signed_in(self) -> bool:
        """True for guest -> user and for user A -> user B (account switch)."""
        return self.current is not None

    @property
    def signed_out(self) -> bool:
        return self.current is None and self.previous is not None


class IdentityStore(Store[IdentityState]):
    def __init__(self, bus: MessageBus, user: User | None = None) -> None:
        super().__init__(IdentityState(user=user))
        self._bus = bus

    def current_user(self) -> User | None:
        return self.state.user

    @property
    def is_authenticated(self) -> bool:
        return self.state.is_authenticated

    async def sign_in(self, user: User) -> None:
        """Record ``user`` as signed in and wait for subscribers to reconcile."""
        previous = self.state.user
        if previous is not None and previous.id == user.id:
            # Token refresh for the same account is not an identity transition
            self._set_state(user=user)
            return

        self._set_state(user=user)
        add_context(user_id=user.id)
        logger.info(
            "identity_signed_in",
            user_id=user.id,
            previous_user_id=previous.id if previous else None,
        )
        await self._bus.publish(IdentityChanged(previous=previous, current=user))

    async def sign_out(self) -> None:
        previous = self.state.user
        if previous is None:
            return

        self._set_state(user=None)
        logger.info("identity_signed_out", user_id=previous.id)
        clear_context()
        await self._bus.publish(IdentityChanged(previous=previous, current=None))

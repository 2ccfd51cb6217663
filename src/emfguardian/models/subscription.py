"""
Client-side subscription record.

A [Subscription][emfguardian.models.subscription.Subscription] maps an opaque
identifier to its filters and to the callbacks that receive matching events.
It is owned by one [RelayClient][emfguardian.client.RelayClient]: created on
``subscribe``, removed on ``unsubscribe``, on a relay ``CLOSED``, or on
``disconnect``.

Each filter is registered with the relay under its own relay-side id, listed
in ``relay_ids``. With a single filter that id is the subscription id itself.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from .event import SignedEvent
    from .filter import Filter


SUBSCRIPTION_ID_MAX_LENGTH = 64

EventCallback = Callable[["SignedEvent"], Any]
EoseCallback = Callable[[str], Any]
ClosedCallback = Callable[[str, str], Any]


def relay_subscription_ids(subscription_id: str, count: int) -> tuple[str, ...]:
    """Return the relay-side ids for a subscription carrying *count* filters."""
    if count == 1:
        return (subscription_id,)
    return tuple(f"{subscription_id}:{i}" for i in range(count))


@dataclass(slots=True)
class Subscription:
    """Active subscription registered against a relay.

    Attributes:
        id: Opaque identifier, unique within the owning client's lifetime.
        filters: Filters of the subscription (logical OR).
        on_event: Called with each matching
            [SignedEvent][emfguardian.models.event.SignedEvent].
        on_eose: Called with the subscription id once the relay has signalled
            end of stored events for every filter.
        on_closed: Called with the subscription id and the relay's message
            when the relay terminates the subscription.
        relay_ids: Relay-side subscription id of each filter, in filter order.
        eose_pending: Relay-side ids still waiting for end of stored events.
        eose_received: Whether end of stored events has been signalled.
        events_received: Number of events delivered so far.
    """

    id: str
    filters: tuple[Filter, ...]
    on_event: EventCallback | None = None
    on_eose: EoseCallback | None = None
    on_closed: ClosedCallback | None = None
    relay_ids: tuple[str, ...] = ()
    eose_pending: set[str] = field(default_factory=set)
    eose_received: bool = field(default=False)
    events_received: int = field(default=0)

    def __post_init__(self) -> None:
        if not self.id or len(self.id) > SUBSCRIPTION_ID_MAX_LENGTH:
            raise ValueError(
                f"subscription id must be 1..{SUBSCRIPTION_ID_MAX_LENGTH} characters"
            )
        if not self.filters:
            raise ValueError("subscription requires at least one filter")
        if not self.relay_ids:
            self.relay_ids = relay_subscription_ids(self.id, len(self.filters))
        elif len(self.relay_ids) != len(self.filters):
            raise ValueError("relay_ids must hold one id per filter")
        for relay_id in self.relay_ids:
            if not relay_id or len(relay_id) > SUBSCRIPTION_ID_MAX_LENGTH:
                raise ValueError(
                    f"relay subscription id must be 1..{SUBSCRIPTION_ID_MAX_LENGTH} characters"
                )
        if not self.eose_received and not self.eose_pending:
            self.eose_pending = set(self.relay_ids)

    def mark_eose(self, relay_id: str) -> bool:
        """Record end of stored events for *relay_id*.

        Returns:
            ``True`` exactly once, when the last pending filter reaches EOSE.
        """
        if self.eose_received or relay_id not in self.eose_pending:
            return False
        self.eose_pending.discard(relay_id)
        if self.eose_pending:
            return False
        self.eose_received = True
        return True

"""Frozen dataclasses with zero I/O for relay endpoints, events, and filters.

The models layer is the foundation of the diamond DAG. It has no dependencies
on any other emfguardian package. Value models use
``@dataclass(frozen=True, slots=True)`` for immutability, and all validation
happens in ``__post_init__`` so invalid instances never escape the constructor.

Attributes:
    RelayEndpoint: Validated relay URL with RFC 3986 parsing and automatic
        [NetworkType][emfguardian.models.constants.NetworkType] detection.
    UnsignedEvent: Application payload (kind, content, tags, timestamp).
    SignedEvent: Immutable wrapper around a signed ``nostr_sdk.Event``.
    Filter: NIP-01 subscription filter with local matching.
    Subscription: Mutable record of one active subscription.
    ClientState: Relay client lifecycle states.

See Also:
    [emfguardian.utils][emfguardian.utils]: Signing, wire codec and transport
        built on these models.
"""

from .constants import (
    DEFAULT_RELAY_URL,
    EVENT_KIND_MAX,
    ClientState,
    EventKind,
    NetworkType,
)
from .event import SignedEvent, UnsignedEvent
from .filter import Filter
from .relay import RelayEndpoint
from .subscription import Subscription


__all__ = [
    "DEFAULT_RELAY_URL",
    "EVENT_KIND_MAX",
    "ClientState",
    "EventKind",
    "Filter",
    "NetworkType",
    "RelayEndpoint",
    "SignedEvent",
    "Subscription",
    "UnsignedEvent",
]

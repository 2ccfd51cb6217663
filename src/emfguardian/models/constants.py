"""Shared constants for the models layer.

Defines enumerations and other constants that are used across multiple
model modules. Placing them here avoids circular dependencies between
the models and utils layers.

See Also:
    [emfguardian.models.relay][]: Uses [NetworkType][emfguardian.models.constants.NetworkType]
        to classify relay URLs during construction.
    [emfguardian.client][]: Drives [ClientState][emfguardian.models.constants.ClientState]
        transitions.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


DEFAULT_RELAY_URL = "wss://relay.damus.io"

EVENT_KIND_MAX = 65_535


class NetworkType(StrEnum):
    """Network type enum for relay classification.

    Each relay URL is classified into exactly one network type during
    [RelayEndpoint][emfguardian.models.relay.RelayEndpoint] construction.

    Attributes:
        CLEARNET: Public internet relay.
        TOR: Tor hidden service identified by a ``.onion`` hostname.
        I2P: I2P eepsite identified by a ``.i2p`` hostname.
        LOKI: Lokinet service identified by a ``.loki`` hostname.
        LOCAL: Loopback, private or reserved address (a private relay).
        UNKNOWN: Hostname that could not be classified (rejected during validation).

    Examples:
        ```python
        RelayEndpoint("wss://relay.damus.io").network   # NetworkType.CLEARNET
        RelayEndpoint("ws://abc123.onion").network       # NetworkType.TOR
        RelayEndpoint("ws://127.0.0.1:7777").network     # NetworkType.LOCAL
        ```
    """

    CLEARNET = "clearnet"
    TOR = "tor"
    I2P = "i2p"
    LOKI = "loki"
    LOCAL = "local"
    UNKNOWN = "unknown"


class ClientState(StrEnum):
    """Lifecycle state of a [RelayClient][emfguardian.client.RelayClient].

    Transitions are one-way: ``UNCONNECTED -> CONNECTED -> DISCONNECTED``.
    ``DISCONNECTED`` is terminal for a given client instance.
    """

    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class EventKind(IntEnum):
    """Well-known Nostr event kinds.

    Attributes:
        SET_METADATA: Kind 0 -- user profile metadata (NIP-01).
        TEXT_NOTE: Kind 1 -- short text note (NIP-01). Task completions are
            broadcast with this kind.
    """

    SET_METADATA = 0
    TEXT_NOTE = 1

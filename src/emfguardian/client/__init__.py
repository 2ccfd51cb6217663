"""Client layer: the relay client the host application talks to.

Composes the lower layers: identity and signing from
[emfguardian.utils.keys][emfguardian.utils.keys], the ``nostr_sdk.Client``
from [emfguardian.utils.transport][emfguardian.utils.transport], and errors
and logging from [emfguardian.core][emfguardian.core].

Attributes:
    RelayClient: Async client for one relay (connect, publish, subscribe,
        unsubscribe, disconnect).
    RelayClientConfig: Pydantic configuration model for the client.
    RelayTimeoutsConfig: Optional connect, publish and close timeouts.
"""

from .configs import RelayClientConfig, RelayTimeoutsConfig
from .relay_client import RelayClient


__all__ = [
    "RelayClient",
    "RelayClientConfig",
    "RelayTimeoutsConfig",
]

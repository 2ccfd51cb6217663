r"""EMF Sleep Guardian -- Nostr relay client for the nightly checklist app.

Publishes signed task-completion notes and follows the community feed on a
single Nostr relay over NIP-01.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
               client          Relay client and its configuration
             /   |   \
          core  nips  utils    Errors/logging/config, event builders, keys/codec/transport
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Attributes:
    models: Pure frozen dataclasses. Zero I/O.
    core: Exceptions, structured logging, YAML loading.
    nips: Task-completion notes and the community feed filter.
    utils: Nostr keys and signing, NIP-01 wire codec, WebSocket transport.
    client: [RelayClient][emfguardian.client.RelayClient].

Note:
    For lightweight usage, import directly from subpackages::

        from emfguardian.client import RelayClient
        from emfguardian.models import Filter

    Top-level imports (``from emfguardian import RelayClient``) use lazy
    loading and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("emfguardian")

__all__ = [
    "ClientState",
    "ConfigurationError",
    "Filter",
    "GuardianError",
    "Logger",
    "PublishError",
    "RelayClient",
    "RelayClientConfig",
    "RelayConnectionError",
    "RelayEndpoint",
    "SignedEvent",
    "SubscriptionError",
    "UnsignedEvent",
    "build_community_filter",
    "build_task_completion_event",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "RelayClient": ("emfguardian.client", "RelayClient"),
    "RelayClientConfig": ("emfguardian.client", "RelayClientConfig"),
    "ConfigurationError": ("emfguardian.core", "ConfigurationError"),
    "GuardianError": ("emfguardian.core", "GuardianError"),
    "Logger": ("emfguardian.core", "Logger"),
    "PublishError": ("emfguardian.core", "PublishError"),
    "RelayConnectionError": ("emfguardian.core", "RelayConnectionError"),
    "SubscriptionError": ("emfguardian.core", "SubscriptionError"),
    "ClientState": ("emfguardian.models", "ClientState"),
    "Filter": ("emfguardian.models", "Filter"),
    "RelayEndpoint": ("emfguardian.models", "RelayEndpoint"),
    "SignedEvent": ("emfguardian.models", "SignedEvent"),
    "UnsignedEvent": ("emfguardian.models", "UnsignedEvent"),
    "build_community_filter": ("emfguardian.nips", "build_community_filter"),
    "build_task_completion_event": ("emfguardian.nips", "build_task_completion_event"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'emfguardian' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__

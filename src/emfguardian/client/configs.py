"""Pydantic configuration models for the relay client.

Loaded from YAML via [RelayClient.from_yaml()][emfguardian.client.RelayClient.from_yaml]
or built in code. Every field has a default, so an empty mapping yields a
client for ``wss://relay.damus.io`` with no timeouts and a throwaway identity.

Examples:
    ```yaml
    relay_url: wss://relay.example
    timeouts:
      connect: 10.0
      publish: 15.0
    identity:
      keys_env: EMFGUARDIAN_PRIVATE_KEY
    ```
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from emfguardian.models.constants import DEFAULT_RELAY_URL
from emfguardian.models.relay import RelayEndpoint
from emfguardian.utils.keys import KeysConfig  # noqa: TC001  # pydantic needs it at runtime
from emfguardian.utils.transport import DEFAULT_CLOSE_TIMEOUT


class RelayTimeoutsConfig(BaseModel):
    """Timeout settings for relay operations (in seconds).

    ``None`` disables a timeout. Only ``close`` is bounded by default so that
    [disconnect()][emfguardian.client.RelayClient.disconnect] cannot hang on
    an unresponsive relay.

    See Also:
        [RelayClientConfig][emfguardian.client.configs.RelayClientConfig]:
            Parent configuration that embeds this model.
    """

    connect: float | None = Field(default=None, gt=0.0, description="WebSocket handshake timeout")
    publish: float | None = Field(
        default=None, gt=0.0, description="Wait for the relay's OK acknowledgement"
    )
    close: float = Field(
        default=DEFAULT_CLOSE_TIMEOUT, gt=0.0, description="Socket and session close timeout"
    )


class RelayClientConfig(BaseModel):
    """Aggregate configuration for a [RelayClient][emfguardian.client.RelayClient].

    Attributes:
        relay_url: WebSocket URL of the relay.
        timeouts: Optional bounds on connect, publish and close.
        allow_insecure: Accept invalid TLS certificates (private relays only).
        wait_for_ok: Wait for the relay's ``OK`` before ``publish()`` returns.
            When disabled, a publish succeeds once the message is written.
        verify_events: Drop delivered events whose id or signature is invalid.
        proxy_url: SOCKS5 proxy URL, required for overlay network relays
            (``.onion``, ``.i2p``, ``.loki``).
        log_json: Emit client log lines as JSON instead of key=value pairs.
        identity: Optional persistent identity loaded from the environment.
            When omitted, each client generates a throwaway key pair.

    See Also:
        [RelayTimeoutsConfig][emfguardian.client.configs.RelayTimeoutsConfig]:
            Timeout settings.
        [KeysConfig][emfguardian.utils.keys.KeysConfig]: Environment-backed
            private key loader.
    """

    relay_url: str = Field(default=DEFAULT_RELAY_URL, min_length=1, description="Relay URL")
    timeouts: RelayTimeoutsConfig = Field(default_factory=RelayTimeoutsConfig)
    allow_insecure: bool = Field(default=False, description="Skip TLS certificate checks")
    wait_for_ok: bool = Field(default=True, description="Wait for the relay's OK on publish")
    verify_events: bool = Field(default=True, description="Verify delivered event signatures")
    proxy_url: str | None = Field(
        default=None, description="SOCKS5 proxy for tor, i2p and loki relays (nostr-sdk proxy mode)"
    )
    log_json: bool = Field(default=False, description="JSON log output")
    identity: KeysConfig | None = Field(default=None, description="Persistent identity")

    @field_validator("relay_url")
    @classmethod
    def validate_relay_url(cls, v: str) -> str:
        """Ensure the URL parses as a ws:// or wss:// relay endpoint."""
        return RelayEndpoint(v).url

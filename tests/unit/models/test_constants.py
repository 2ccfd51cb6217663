"""
Unit tests for models.constants module.

Tests:
- NetworkType and ClientState string values
- EventKind integer values
- Default relay URL
"""

from emfguardian.models import (
    DEFAULT_RELAY_URL,
    EVENT_KIND_MAX,
    ClientState,
    EventKind,
    NetworkType,
    RelayEndpoint,
)


class TestNetworkType:
    """NetworkType StrEnum."""

    def test_values(self) -> None:
        assert NetworkType.CLEARNET == "clearnet"
        assert NetworkType.TOR == "tor"
        assert NetworkType.I2P == "i2p"
        assert NetworkType.LOKI == "loki"
        assert NetworkType.LOCAL == "local"
        assert NetworkType.UNKNOWN == "unknown"


class TestClientState:
    """ClientState StrEnum."""

    def test_lifecycle_values(self) -> None:
        assert [s.value for s in ClientState] == ["unconnected", "connected", "disconnected"]


class TestEventKind:
    """EventKind IntEnum."""

    def test_values(self) -> None:
        assert EventKind.SET_METADATA == 0
        assert EventKind.TEXT_NOTE == 1
        assert EVENT_KIND_MAX == 65_535


class TestDefaultRelayUrl:
    """Default public relay."""

    def test_is_valid_endpoint(self) -> None:
        endpoint = RelayEndpoint(DEFAULT_RELAY_URL)
        assert endpoint.url == "wss://relay.damus.io"
        assert endpoint.network == NetworkType.CLEARNET

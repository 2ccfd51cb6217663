"""
Unit tests for client.configs module.

Tests:
- RelayTimeoutsConfig - defaults and positive bounds
- RelayClientConfig - defaults, relay URL normalization and rejection
- RelayClientConfig.identity - keys loaded from the environment
"""

import pytest
from nostr_sdk import Keys
from pydantic import ValidationError

from emfguardian.client.configs import RelayClientConfig, RelayTimeoutsConfig
from emfguardian.models.constants import DEFAULT_RELAY_URL
from emfguardian.utils.keys import ENV_PRIVATE_KEY
from emfguardian.utils.transport import DEFAULT_CLOSE_TIMEOUT


# =============================================================================
# RelayTimeoutsConfig Tests
# =============================================================================


class TestRelayTimeoutsConfig:
    """RelayTimeoutsConfig defaults and validation."""

    def test_defaults(self) -> None:
        config = RelayTimeoutsConfig()
        assert config.connect is None
        assert config.publish is None
        assert config.close == DEFAULT_CLOSE_TIMEOUT

    def test_custom(self) -> None:
        config = RelayTimeoutsConfig(connect=2.5, publish=10, close=1.0)
        assert config.connect == 2.5
        assert config.publish == 10.0

    @pytest.mark.parametrize("field", ["connect", "publish", "close"])
    @pytest.mark.parametrize("value", [0, -1.0])
    def test_must_be_positive(self, field: str, value: float) -> None:
        with pytest.raises(ValidationError):
            RelayTimeoutsConfig(**{field: value})


# =============================================================================
# RelayClientConfig Tests
# =============================================================================


class TestRelayClientConfig:
    """RelayClientConfig defaults and relay URL validation."""

    def test_defaults(self) -> None:
        config = RelayClientConfig()
        assert config.relay_url == DEFAULT_RELAY_URL
        assert config.allow_insecure is False
        assert config.wait_for_ok is True
        assert config.verify_events is True
        assert config.proxy_url is None
        assert config.log_json is False
        assert config.identity is None
        assert isinstance(config.timeouts, RelayTimeoutsConfig)

    def test_relay_url_normalized(self) -> None:
        config = RelayClientConfig(relay_url="  WSS://Relay.Example/  ")
        assert config.relay_url == "wss://relay.example"

    def test_local_ws_url_kept(self) -> None:
        config = RelayClientConfig(relay_url="ws://127.0.0.1:7777")
        assert config.relay_url == "ws://127.0.0.1:7777"

    @pytest.mark.parametrize(
        "url",
        ["", "https://relay.example", "relay.example", "wss://nodots", "wss://relay-.example"],
    )
    def test_invalid_relay_url(self, url: str) -> None:
        with pytest.raises(ValidationError):
            RelayClientConfig(relay_url=url)

    def test_nested_timeouts_from_dict(self) -> None:
        config = RelayClientConfig(**{"timeouts": {"connect": 3.0}})
        assert config.timeouts.connect == 3.0
        assert config.timeouts.publish is None


# =============================================================================
# Identity Tests
# =============================================================================


class TestIdentity:
    """Persistent identity loaded through KeysConfig."""

    def test_keys_from_default_env(self, monkeypatch: pytest.MonkeyPatch, keys: Keys) -> None:
        monkeypatch.setenv(ENV_PRIVATE_KEY, keys.secret_key().to_hex())
        config = RelayClientConfig(identity={})
        assert config.identity is not None
        assert config.identity.keys.public_key().to_hex() == keys.public_key().to_hex()

    def test_keys_from_custom_env(self, monkeypatch: pytest.MonkeyPatch, keys: Keys) -> None:
        monkeypatch.setenv("GUARDIAN_TEST_KEY", keys.secret_key().to_bech32())
        config = RelayClientConfig(identity={"keys_env": "GUARDIAN_TEST_KEY"})
        assert config.identity is not None
        assert config.identity.keys.public_key().to_hex() == keys.public_key().to_hex()

    def test_missing_env_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(ENV_PRIVATE_KEY, raising=False)
        with pytest.raises(ValidationError, match=ENV_PRIVATE_KEY):
            RelayClientConfig(identity={})

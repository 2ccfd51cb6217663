"""emfguardian exception hierarchy.

Provides typed exceptions for every failure the relay client surfaces, so
callers can catch a specific category while ``CancelledError`` propagates
untouched.

Exception hierarchy:

```text
GuardianError (base -- never raised directly)
├── ConfigurationError       -- invalid relay URL, bad YAML, missing keys
├── RelayConnectionError     -- relay unreachable, handshake failure, used after disconnect
│   ├── RelayTimeoutError    -- configured connect timeout elapsed
│   └── RelaySSLError        -- certificate issues
├── PublishError             -- signing failure, rejection, network failure while publishing
└── SubscriptionError        -- malformed filter, registration rejected
```

``RelayConnectionError`` also derives from the builtin ``ConnectionError`` so
callers that only know the standard library hierarchy still catch it.

See Also:
    [RelayClient][emfguardian.client.RelayClient]: Raises these exceptions from
        ``connect``, ``publish`` and ``subscribe``.
"""

from __future__ import annotations


class GuardianError(Exception):
    """Base exception for all emfguardian errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(GuardianError):
    """Invalid or missing configuration (relay URL, YAML, env vars)."""


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class RelayConnectionError(GuardianError, ConnectionError):
    """Relay unreachable, handshake rejected, or operation attempted after disconnect.

    See Also:
        [RelayTimeoutError][emfguardian.core.exceptions.RelayTimeoutError]:
            Connection timed out.
        [RelaySSLError][emfguardian.core.exceptions.RelaySSLError]: TLS/SSL
            certificate or handshake failure.
    """


class RelayTimeoutError(RelayConnectionError):
    """Connection attempt exceeded the configured timeout."""


class RelaySSLError(RelayConnectionError):
    """TLS/SSL certificate or handshake failure."""


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------


class PublishError(GuardianError):
    """Failed to sign or deliver an event to the relay.

    Attributes:
        event_id: Identifier of the signed event, when signing succeeded.
        relay_message: Message returned by the relay in a rejecting ``OK``,
            if any.
    """

    def __init__(
        self,
        message: str,
        *,
        event_id: str | None = None,
        relay_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.event_id = event_id
        self.relay_message = relay_message


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


class SubscriptionError(GuardianError):
    """Malformed filter or subscription request the relay cannot accept."""



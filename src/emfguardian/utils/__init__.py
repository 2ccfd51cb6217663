"""Nostr identity and the ``nostr_sdk.Client`` transport.

The utils layer depends only on
[emfguardian.models][emfguardian.models]. It provides the cryptographic
and network primitives used by [emfguardian.client][emfguardian.client].

Attributes:
    keys: Key generation, optional loading from environment variables
        (nsec1 bech32 or hex), and event signing via ``nostr_sdk``.
    transport: ``nostr_sdk.Client`` factories, the SSL fallback connect and
        the aiohttp-based insecure WebSocket transport.

Note:
    The utils layer has **zero** imports from ``emfguardian.core`` or
    ``emfguardian.client``. Errors are raised as standard exceptions
    (``OSError``, ``TimeoutError``, ``ssl.SSLError``, ``ValueError``) and
    translated by the client.

Examples:
    ```python
    from emfguardian.utils.keys import generate_keys, sign_event
    from emfguardian.utils.transport import connect_relay
    ```
"""

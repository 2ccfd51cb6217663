"""Nostr identity and event signing utilities.

Provides key generation, optional key loading from environment variables,
and signing of [UnsignedEvent][emfguardian.models.event.UnsignedEvent]
payloads into [SignedEvent][emfguardian.models.event.SignedEvent] records.
All cryptography (secp256k1 keys, SHA-256 event identifiers, BIP-340
Schnorr signatures) is delegated to ``nostr_sdk``.

Warning:
    Private keys must **never** be stored in configuration files, source code,
    or logged to any output. When a persistent identity is wanted, supply it
    through an environment variable or a secret store.

Note:
    A [RelayClient][emfguardian.client.RelayClient] generates a throwaway
    identity with [generate_keys()][emfguardian.utils.keys.generate_keys]
    unless the host injects one, for example with
    [load_keys_from_env()][emfguardian.utils.keys.load_keys_from_env].

Examples:
    ```python
    keys = generate_keys()
    signed = sign_event(UnsignedEvent(kind=1, content="hello"), keys)
    assert signed.verify()
    assert signed.pubkey == keys.public_key().to_hex()
    ```
"""

from __future__ import annotations

import os
import time
from typing import Any

from nostr_sdk import EventBuilder, Keys, Kind, Tag, Timestamp
from pydantic import BaseModel, Field, model_validator

from emfguardian.models.event import SignedEvent, UnsignedEvent


ENV_PRIVATE_KEY = "EMFGUARDIAN_PRIVATE_KEY"  # pragma: allowlist secret  # Default env var name


def generate_keys() -> Keys:
    """Generate a fresh random identity (private key plus derived public key)."""
    return Keys.generate()


def public_key_hex(keys: Keys) -> str:
    """Return the 64-char hex x-only public key for *keys*."""
    return str(keys.public_key().to_hex())


def load_keys_from_env(env_var: str = ENV_PRIVATE_KEY) -> Keys:
    """Load Nostr keys from an environment variable.

    Parses a private key (nsec1 bech32 or 64-char hex) and returns a ``Keys``
    object containing both the private and derived public key.

    Args:
        env_var: Name of the environment variable containing the private key.

    Returns:
        A ``nostr_sdk.Keys`` instance ready for signing operations.

    Raises:
        ValueError: If the environment variable is not set or is empty.
        nostr_sdk.NostrSdkError: If the key value is malformed or invalid.
    """
    value = os.getenv(env_var)

    if not value:
        raise ValueError(
            f"{env_var} environment variable is required. Generate one with: openssl rand -hex 32"
        )

    return Keys.parse(value)


def sign_event(event: UnsignedEvent, keys: Keys, *, now: int | None = None) -> SignedEvent:
    """Stamp identifier and signature onto a copy of *event*.

    The caller's event is never mutated: a new
    [SignedEvent][emfguardian.models.event.SignedEvent] is built from its
    fields. When ``event.created_at`` is ``None`` the event is stamped with
    *now* (defaults to the current time).

    Args:
        event: Payload to sign.
        keys: Identity used for the public key and the signature.
        now: Override for the default timestamp, in seconds.

    Returns:
        The signed event.

    Raises:
        ValueError: If nostr-sdk rejects the payload (e.g. a malformed tag).
    """
    created_at = event.created_at
    if created_at is None:
        created_at = int(time.time()) if now is None else now

    try:
        builder = (
            EventBuilder(Kind(event.kind), event.content)
            .tags([Tag.parse(list(tag)) for tag in event.tags])
            .custom_created_at(Timestamp.from_secs(created_at))
        )
        signed = builder.sign_with_keys(keys)
    except Exception as e:  # nostr-sdk raises its own FFI error types
        raise ValueError(f"Failed to sign event: {e}") from e

    return SignedEvent(signed)


class KeysConfig(BaseModel):
    """Pydantic model that loads Nostr keys from an environment variable.

    The ``keys`` field is populated automatically during validation from the
    environment variable named by ``keys_env``. Used by hosts that want every
    session to publish under one persistent public key.

    Warning:
        The ``keys`` field contains a live private key. Do not serialize
        this model to logs, JSON, or any persistent storage.
    """

    model_config = {"arbitrary_types_allowed": True}

    keys_env: str = Field(
        default=ENV_PRIVATE_KEY,
        min_length=1,
        description="Environment variable name for private key",
    )
    keys: Keys = Field(description="Keys loaded from keys_env")

    @model_validator(mode="before")
    @classmethod
    def _load_keys_from_env(cls, data: Any) -> Any:
        """Auto-populate the ``keys`` field from the environment variable."""
        if isinstance(data, dict) and "keys" not in data:
            env_var = data.get("keys_env", ENV_PRIVATE_KEY)
            data["keys"] = load_keys_from_env(env_var)
        return data

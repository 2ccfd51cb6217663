"""
Unsigned and signed Nostr event models.

[UnsignedEvent][emfguardian.models.event.UnsignedEvent] is the payload the
host application hands to the client: a kind, free-text content, tags and
an optional creation timestamp.
[SignedEvent][emfguardian.models.event.SignedEvent] wraps a signed
``nostr_sdk.Event`` in a frozen dataclass, exposing the NIP-01 fields as
plain Python values.

See Also:
    [emfguardian.utils.keys.sign_event][emfguardian.utils.keys.sign_event]:
        Produces a [SignedEvent][emfguardian.models.event.SignedEvent] from an
        [UnsignedEvent][emfguardian.models.event.UnsignedEvent].
    [emfguardian.models.filter.Filter][emfguardian.models.filter.Filter]:
        Matches signed events locally.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from nostr_sdk import Event as NostrEvent

from ._validation import (
    freeze_sequence,
    validate_instance,
    validate_kind,
    validate_mapping,
    validate_str_no_null,
    validate_str_not_empty,
    validate_timestamp,
)


Tags = tuple[tuple[str, ...], ...]


def _freeze_tags(value: Any) -> Tags:
    """Validate a list of tag arrays and return it as nested tuples."""
    tags = freeze_sequence(value, "tags")
    frozen: list[tuple[str, ...]] = []
    for i, tag in enumerate(tags):
        items = freeze_sequence(tag, f"tags[{i}]")
        if not items:
            raise ValueError(f"tags[{i}] must not be empty")
        validate_str_not_empty(items[0], f"tags[{i}][0]")
        for j, item in enumerate(items[1:], start=1):
            validate_str_no_null(item, f"tags[{i}][{j}]")
        frozen.append(items)
    return tuple(frozen)


@dataclass(frozen=True, slots=True)
class UnsignedEvent:
    """Application-level event awaiting identity and signature.

    Attributes:
        kind: Integer event category (0..65535).
        content: Free-text content.
        tags: Tag arrays, e.g. ``(("t", "emf-health"),)``. Lists are accepted
            and frozen into tuples.
        created_at: Unix timestamp in seconds, or ``None`` to stamp the
            event at publish time.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If the kind is out of range, a timestamp is negative,
            a tag is empty, or strings contain null bytes.

    Examples:
        ```python
        event = UnsignedEvent(kind=1, content="hello", tags=[["t", "emf-health"]])
        event.tags   # (('t', 'emf-health'),)
        ```
    """

    kind: int
    content: str = ""
    tags: Tags = ()
    created_at: int | None = None

    def __post_init__(self) -> None:
        validate_kind(self.kind, "kind")
        object.__setattr__(self, "kind", int(self.kind))
        validate_str_no_null(self.content, "content")
        object.__setattr__(self, "tags", _freeze_tags(self.tags))
        if self.created_at is not None:
            validate_timestamp(self.created_at, "created_at")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UnsignedEvent:
        """Build an event from the host application's dict shape.

        Accepts ``kind``, ``content``, ``tags`` and ``created_at`` keys.
        Identity fields (``id``, ``pubkey``, ``sig``) are ignored because
        they are always recomputed at signing time.

        Raises:
            TypeError: If *data* is not a mapping or a field has the wrong type.
            ValueError: If ``kind`` is missing or a field is invalid.
        """
        validate_mapping(data, "event")
        if "kind" not in data:
            raise ValueError("event is missing required field 'kind'")
        return cls(
            kind=data["kind"],
            content=data.get("content", ""),
            tags=data.get("tags", []),
            created_at=data.get("created_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the event as a JSON-compatible dict (``created_at`` omitted when unset)."""
        result: dict[str, Any] = {
            "kind": self.kind,
            "content": self.content,
            "tags": [list(tag) for tag in self.tags],
        }
        if self.created_at is not None:
            result["created_at"] = self.created_at
        return result


@dataclass(frozen=True, slots=True)
class SignedEvent:
    """Immutable signed Nostr event.

    Wraps a ``nostr_sdk.Event`` and caches its NIP-01 JSON representation
    so fields are available as plain Python values. The identifier is the
    SHA-256 of the canonical serialization
    ``[0, pubkey, created_at, kind, tags, content]`` and the signature is a
    BIP-340 Schnorr signature over that identifier.

    Args:
        _nostr_event: The underlying ``nostr_sdk.Event`` instance.

    Examples:
        ```python
        signed = SignedEvent.from_json(raw_json)
        signed.id        # 64-char hex
        signed.verify()  # True for an untampered event
        ```
    """

    _nostr_event: NostrEvent
    _data: dict[str, Any] = field(
        default=None,  # type: ignore[assignment]
        init=False,
        repr=False,
        compare=False,
        hash=False,
    )

    def __post_init__(self) -> None:
        validate_instance(self._nostr_event, NostrEvent, "_nostr_event")
        object.__setattr__(self, "_data", json.loads(self._nostr_event.as_json()))

    @classmethod
    def from_json(cls, raw: str) -> SignedEvent:
        """Parse a signed event from its NIP-01 JSON string.

        The signature is not checked here; call
        [verify()][emfguardian.models.event.SignedEvent.verify].

        Raises:
            ValueError: If the JSON is not a well-formed signed event.
        """
        try:
            inner = NostrEvent.from_json(raw)
        except Exception as e:  # nostr-sdk raises its own FFI error types
            raise ValueError(f"Invalid event JSON: {e}") from e
        return cls(inner)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SignedEvent:
        """Parse a signed event from a decoded NIP-01 JSON object."""
        validate_mapping(data, "event")
        return cls.from_json(json.dumps(dict(data), ensure_ascii=False))

    @property
    def id(self) -> str:
        return str(self._data["id"])

    @property
    def pubkey(self) -> str:
        return str(self._data["pubkey"])

    @property
    def sig(self) -> str:
        return str(self._data["sig"])

    @property
    def kind(self) -> int:
        return int(self._data["kind"])

    @property
    def content(self) -> str:
        return str(self._data["content"])

    @property
    def created_at(self) -> int:
        return int(self._data["created_at"])

    @property
    def tags(self) -> Tags:
        return tuple(tuple(tag) for tag in self._data["tags"])

    @property
    def nostr_event(self) -> NostrEvent:
        """The wrapped ``nostr_sdk.Event``."""
        return self._nostr_event

    def verify(self) -> bool:
        """Check the identifier and signature against the embedded public key."""
        try:
            return bool(self._nostr_event.verify())
        except Exception:  # nostr-sdk raises its own FFI error types
            return False

    def tag_values(self, name: str) -> list[str]:
        """Return the first value of every tag whose name is *name*."""
        return [tag[1] for tag in self.tags if len(tag) > 1 and tag[0] == name]

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON object for this event."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    def to_json(self) -> str:
        """Return the NIP-01 JSON string produced by nostr-sdk."""
        return str(self._nostr_event.as_json())

    def to_unsigned(self) -> UnsignedEvent:
        """Strip identity fields, returning the unsigned payload."""
        return UnsignedEvent(
            kind=self.kind,
            content=self.content,
            tags=self.tags,
            created_at=self.created_at,
        )

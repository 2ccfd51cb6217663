"""
Subscription filters (NIP-01 ``REQ`` filter objects).

A [Filter][emfguardian.models.filter.Filter] describes which events a relay
should forward to a subscriber. Every populated field narrows the match
(logical AND); a subscription carrying several filters receives the union of
their matches (logical OR), which is evaluated relay-side.
[matches()][emfguardian.models.filter.Filter.matches] applies the same rules
locally, and
[to_nostr_filter()][emfguardian.models.filter.Filter.to_nostr_filter] hands
the filter to ``nostr_sdk`` when subscribing.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from nostr_sdk import Filter as NostrFilter

from ._validation import (
    deep_freeze,
    freeze_sequence,
    validate_hex64,
    validate_kind,
    validate_mapping,
    validate_str_no_null,
    validate_timestamp,
)


if TYPE_CHECKING:
    from .event import SignedEvent


_SCALAR_KEYS = frozenset({"since", "until", "limit"})
_LIST_KEYS = frozenset({"ids", "authors", "kinds"})


def _freeze_nonempty(value: Any, name: str) -> tuple[Any, ...]:
    items = freeze_sequence(value, name)
    if not items:
        raise ValueError(f"{name} must not be empty")
    return items


@dataclass(frozen=True, slots=True)
class Filter:
    """Immutable NIP-01 filter.

    Attributes:
        ids: Event identifiers (64-char lowercase hex).
        authors: Author public keys (64-char lowercase hex).
        kinds: Event kinds.
        tags: Single-letter tag name to accepted values, rendered on the wire
            as ``"#<letter>"`` keys.
        since: Lower bound (inclusive) on ``created_at``.
        until: Upper bound (inclusive) on ``created_at``.
        limit: Maximum number of stored events the relay should return.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If a list is empty, a value is malformed, or
            ``since > until``.

    Examples:
        ```python
        f = Filter(kinds=[1], tags={"t": ["emf-health", "sleep-optimization"]})
        f.to_dict()
        # {'kinds': [1], '#t': ['emf-health', 'sleep-optimization']}
        ```
    """

    ids: Sequence[str] | None = None
    authors: Sequence[str] | None = None
    kinds: Sequence[int] | None = None
    tags: Mapping[str, Sequence[str]] = field(default_factory=dict, hash=False)
    since: int | None = None
    until: int | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        if self.ids is not None:
            ids = _freeze_nonempty(self.ids, "ids")
            for i, value in enumerate(ids):
                validate_hex64(value, f"ids[{i}]")
            object.__setattr__(self, "ids", ids)

        if self.authors is not None:
            authors = _freeze_nonempty(self.authors, "authors")
            for i, value in enumerate(authors):
                validate_hex64(value, f"authors[{i}]")
            object.__setattr__(self, "authors", authors)

        if self.kinds is not None:
            kinds = _freeze_nonempty(self.kinds, "kinds")
            for i, value in enumerate(kinds):
                validate_kind(value, f"kinds[{i}]")
            object.__setattr__(self, "kinds", tuple(int(k) for k in kinds))

        validate_mapping(self.tags, "tags")
        tags: dict[str, list[str]] = {}
        for name, values in self.tags.items():
            if not isinstance(name, str) or len(name) != 1 or not name.isalpha():
                raise ValueError(f"tag filter name must be a single letter, got {name!r}")
            frozen = _freeze_nonempty(values, f"tags[{name!r}]")
            for value in frozen:
                validate_str_no_null(value, f"tags[{name!r}]")
            tags[name] = list(frozen)
        object.__setattr__(self, "tags", deep_freeze(tags))

        for name in ("since", "until", "limit"):
            value = getattr(self, name)
            if value is not None:
                validate_timestamp(value, name)

        if self.since is not None and self.until is not None and self.since > self.until:
            raise ValueError(f"since ({self.since}) must be <= until ({self.until})")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Filter:
        """Parse a NIP-01 filter object.

        Raises:
            TypeError: If *data* is not a mapping or a value has the wrong type.
            ValueError: On unknown keys or invalid values.
        """
        validate_mapping(data, "filter")
        kwargs: dict[str, Any] = {}
        tags: dict[str, Any] = {}
        for key, value in data.items():
            if key in _LIST_KEYS or key in _SCALAR_KEYS:
                kwargs[key] = value
            elif isinstance(key, str) and key.startswith("#"):
                tags[key[1:]] = value
            else:
                raise ValueError(f"Unsupported filter field: {key!r}")
        return cls(tags=tags, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Render the NIP-01 wire representation, omitting unset fields."""
        result: dict[str, Any] = {}
        if self.ids is not None:
            result["ids"] = list(self.ids)
        if self.authors is not None:
            result["authors"] = list(self.authors)
        if self.kinds is not None:
            result["kinds"] = list(self.kinds)
        for name, values in self.tags.items():
            result[f"#{name}"] = list(values)
        if self.since is not None:
            result["since"] = self.since
        if self.until is not None:
            result["until"] = self.until
        if self.limit is not None:
            result["limit"] = self.limit
        return result

    def to_nostr_filter(self) -> NostrFilter:
        """Convert to a ``nostr_sdk.Filter`` for ``Client.subscribe_with_id``.

        Raises:
            ValueError: If nostr-sdk rejects the filter.
        """
        try:
            return NostrFilter.from_json(json.dumps(self.to_dict(), ensure_ascii=False))
        except Exception as e:  # nostr-sdk raises its own FFI error types
            raise ValueError(f"Invalid filter: {e}") from e

    def matches(self, event: SignedEvent) -> bool:
        """Return ``True`` if *event* satisfies every populated field.

        ``limit`` only applies to stored-event queries and is ignored here.
        """
        if self.ids is not None and event.id not in self.ids:
            return False
        if self.authors is not None and event.pubkey not in self.authors:
            return False
        if self.kinds is not None and event.kind not in self.kinds:
            return False
        if self.since is not None and event.created_at < self.since:
            return False
        if self.until is not None and event.created_at > self.until:
            return False
        for name, values in self.tags.items():
            if not any(value in values for value in event.tag_values(name)):
                return False
        return True


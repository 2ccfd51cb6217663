"""
Pytest configuration and shared fixtures for emfguardian tests.

Provides:
- Logging configuration for the ``emfguardian`` namespace
- Identity fixtures (fresh ``nostr_sdk.Keys``)
- Signed event factories
- Custom pytest markers for test categorization
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import pytest
from nostr_sdk import Keys

from emfguardian.models import SignedEvent, UnsignedEvent
from emfguardian.utils.keys import sign_event


pytest_plugins = ["tests.fixtures.relays"]


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Identity Fixtures
# ============================================================================


@pytest.fixture
def keys() -> Keys:
    """A fresh random identity."""
    return Keys.generate()


@pytest.fixture
def other_keys() -> Keys:
    """A second, independent identity."""
    return Keys.generate()


# ============================================================================
# Event Fixtures
# ============================================================================


@pytest.fixture
def make_signed_event(keys: Keys) -> Callable[..., SignedEvent]:
    """Factory that signs an event with the ``keys`` fixture unless others are given."""

    def _make(
        kind: int = 1,
        content: str = "hello",
        tags: list[list[str]] | None = None,
        created_at: int = 1_700_000_000,
        signer: Keys | None = None,
    ) -> SignedEvent:
        event = UnsignedEvent(kind=kind, content=content, tags=tags or [], created_at=created_at)
        return sign_event(event, signer or keys)

    return _make


@pytest.fixture
def signed_event(make_signed_event: Callable[..., SignedEvent]) -> SignedEvent:
    """A kind 1 note tagged with the checklist topics."""
    return make_signed_event(
        content="Just completed WiFi Router Shutdown task",
        tags=[["t", "emf-health"], ["t", "sleep-optimization"]],
    )


@pytest.fixture
def event_dict() -> dict[str, Any]:
    """Host application event payload."""
    return {"kind": 1, "content": "hello", "tags": [], "created_at": 1_700_000_000}


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (no external dependencies)")

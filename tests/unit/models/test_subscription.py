"""
Unit tests for models.subscription module.

Tests:
- Subscription construction and id length bounds
- Relay-side ids per filter
- End of stored events across several filters
- Mutable delivery counters
"""

import pytest

from emfguardian.models import Filter, Subscription
from emfguardian.models.subscription import SUBSCRIPTION_ID_MAX_LENGTH, relay_subscription_ids


class TestSubscription:
    """Subscription record."""

    def test_defaults(self) -> None:
        sub = Subscription(id="1-abc", filters=(Filter(kinds=[1]),))
        assert sub.on_event is None
        assert sub.eose_received is False
        assert sub.events_received == 0

    def test_counters_mutable(self) -> None:
        sub = Subscription(id="1-abc", filters=(Filter(kinds=[1]),))
        sub.eose_received = True
        sub.events_received += 2
        assert sub.eose_received is True
        assert sub.events_received == 2

    def test_max_length_id_accepted(self) -> None:
        sub_id = "x" * SUBSCRIPTION_ID_MAX_LENGTH
        assert Subscription(id=sub_id, filters=(Filter(),)).id == sub_id

    @pytest.mark.parametrize("sub_id", ["", "x" * (SUBSCRIPTION_ID_MAX_LENGTH + 1)])
    def test_id_length_bounds(self, sub_id: str) -> None:
        with pytest.raises(ValueError, match="subscription id"):
            Subscription(id=sub_id, filters=(Filter(),))

    def test_requires_filters(self) -> None:
        with pytest.raises(ValueError, match="at least one filter"):
            Subscription(id="1-abc", filters=())


class TestRelayIds:
    """One relay-side id per filter."""

    def test_single_filter_reuses_id(self) -> None:
        sub = Subscription(id="1-abc", filters=(Filter(kinds=[1]),))
        assert sub.relay_ids == ("1-abc",)
        assert sub.eose_pending == {"1-abc"}

    def test_several_filters_get_suffixes(self) -> None:
        sub = Subscription(id="1-abc", filters=(Filter(kinds=[1]), Filter(kinds=[7])))
        assert sub.relay_ids == ("1-abc:0", "1-abc:1")
        assert relay_subscription_ids("1-abc", 2) == sub.relay_ids

    def test_mismatched_relay_ids_rejected(self) -> None:
        with pytest.raises(ValueError, match="one id per filter"):
            Subscription(id="1-abc", filters=(Filter(),), relay_ids=("a", "b"))

    def test_relay_id_too_long_rejected(self) -> None:
        sub_id = "x" * SUBSCRIPTION_ID_MAX_LENGTH
        with pytest.raises(ValueError, match="relay subscription id"):
            Subscription(id=sub_id, filters=(Filter(), Filter()))


class TestMarkEose:
    """EOSE completes once every filter has reported it."""

    def test_single_filter(self) -> None:
        sub = Subscription(id="1-abc", filters=(Filter(),))
        assert sub.mark_eose("1-abc") is True
        assert sub.eose_received is True

    def test_waits_for_every_filter(self) -> None:
        sub = Subscription(id="1-abc", filters=(Filter(kinds=[1]), Filter(kinds=[7])))
        assert sub.mark_eose("1-abc:1") is False
        assert sub.eose_received is False
        assert sub.mark_eose("1-abc:0") is True
        assert sub.eose_received is True

    def test_fires_once(self) -> None:
        sub = Subscription(id="1-abc", filters=(Filter(),))
        sub.mark_eose("1-abc")
        assert sub.mark_eose("1-abc") is False

    def test_unknown_relay_id_ignored(self) -> None:
        sub = Subscription(id="1-abc", filters=(Filter(),))
        assert sub.mark_eose("other") is False
        assert sub.eose_pending == {"1-abc"}

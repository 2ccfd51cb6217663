"""Event and filter builders for the nightly checklist feed.

Standalone functions that turn checklist activity into NIP-01 payloads. The
host application calls
[build_task_completion_event()][emfguardian.nips.event_builders.build_task_completion_event]
when the user ticks a task and publishes the result, and subscribes with
[build_community_filter()][emfguardian.nips.event_builders.build_community_filter]
to follow other users' completions.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Final

from emfguardian.models.constants import EventKind
from emfguardian.models.event import UnsignedEvent
from emfguardian.models.filter import Filter


# =============================================================================
# Constants
# =============================================================================

TOPIC_EMF_HEALTH: Final = "emf-health"
TOPIC_SLEEP_OPTIMIZATION: Final = "sleep-optimization"
TOPICS: Final = (TOPIC_EMF_HEALTH, TOPIC_SLEEP_OPTIMIZATION)

TASK_NAMES: Final = MappingProxyType(
    {
        "wifi": "WiFi Router Shutdown",
        "phone": "Phone Distance",
        "microwave": "Stovetop Cooking",
        "tv": "Smart TV Shutdown",
    }
)

MAX_HEALTH_SCORE: Final = 100


# =============================================================================
# Kind 1 (NIP-01)
# =============================================================================


def build_task_completion_event(
    task_id: str,
    score: int,
    *,
    created_at: int | None = None,
) -> UnsignedEvent:
    """Build a Kind 1 note announcing a completed checklist task.

    Args:
        task_id: One of the keys of ``TASK_NAMES``.
        score: Health score to announce. Values above 100 are clamped to 100.
        created_at: Creation timestamp; ``None`` stamps it at publish time.

    Raises:
        ValueError: If the task is unknown or the score is negative.
    """
    name = TASK_NAMES.get(task_id)
    if name is None:
        raise ValueError(f"Unknown task: {task_id!r} (expected one of {sorted(TASK_NAMES)})")
    if isinstance(score, bool) or not isinstance(score, int):
        raise TypeError(f"score must be an int, got {type(score).__name__}")
    if score < 0:
        raise ValueError(f"score must not be negative, got {score}")
    score = min(score, MAX_HEALTH_SCORE)

    hashtags = " ".join(f"#{topic}" for topic in TOPICS)
    content = (
        f"Just completed {name} task for better EMF sleep health! \U0001f319 "
        f"Score: {score}/{MAX_HEALTH_SCORE} {hashtags}"
    )
    return UnsignedEvent(
        kind=EventKind.TEXT_NOTE,
        content=content,
        tags=[["t", topic] for topic in TOPICS],
        created_at=created_at,
    )


def build_community_filter(*, since: int | None = None, limit: int | None = None) -> Filter:
    """Build the filter for Kind 1 notes tagged with the checklist topics."""
    return Filter(
        kinds=[EventKind.TEXT_NOTE],
        tags={"t": list(TOPICS)},
        since=since,
        limit=limit,
    )

"""NIP payload builders for the checklist feed.

Attributes:
    event_builders: Kind 1 task-completion notes and the topic filter the
        host subscribes with.
"""

from .event_builders import (
    TASK_NAMES,
    TOPICS,
    build_community_filter,
    build_task_completion_event,
)


__all__ = [
    "TASK_NAMES",
    "TOPICS",
    "build_community_filter",
    "build_task_completion_event",
]

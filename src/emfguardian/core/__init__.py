"""Core layer: exceptions, structured logging, and configuration loading.

Depends only on the standard library and third-party packages; imported by
the utils, nips and client layers.

Attributes:
    GuardianError: Root of the exception hierarchy. See
        [emfguardian.core.exceptions][emfguardian.core.exceptions].
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][emfguardian.core.logger.Logger].
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.
        See [load_yaml()][emfguardian.core.yaml.load_yaml].
"""

from .exceptions import (
    ConfigurationError,
    GuardianError,
    PublishError,
    RelayConnectionError,
    RelaySSLError,
    RelayTimeoutError,
    SubscriptionError,
)
from .logger import Logger, StructuredFormatter, configure_logging, format_kv_pairs
from .yaml import load_yaml


__all__ = [
    "ConfigurationError",
    "GuardianError",
    "Logger",
    "PublishError",
    "RelayConnectionError",
    "RelaySSLError",
    "RelayTimeoutError",
    "StructuredFormatter",
    "SubscriptionError",
    "configure_logging",
    "format_kv_pairs",
    "load_yaml",
]

"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module so the relay client can emit
events such as ``event_published event_id=... relay=...`` in two formats:
human-readable key=value pairs (default) and JSON for hosts that ship logs
to an aggregator.

The ``StructuredFormatter`` reads structured data from the ``structured_kv``
extra field attached by ``Logger``. Installing it on a handler (see
[configure_logging()][emfguardian.core.logger.configure_logging]) unifies
output from ``Logger`` and from plain ``logging.getLogger()`` calls in the
utils layer.

Examples:
    ```python
    from emfguardian.core.logger import Logger

    logger = Logger("relay_client")
    logger.info("subscription_opened", subscription_id="1-ab12", filters=1)
    # Output: subscription_opened subscription_id=1-ab12 filters=1
    ```

Warning:
    Never pass private key material as a log field.
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, ClassVar


def _truncate(value: Any, max_value_length: int | None) -> str:
    s = str(value)
    if max_value_length and len(s) > max_value_length:
        return s[:max_value_length] + f"...<truncated {len(s) - max_value_length} chars>"
    return s


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Values longer than ``max_value_length`` are truncated, and values
    containing whitespace, equals signs, or quotes are escaped and quoted.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            Pass None to disable truncation.
        prefix: String prepended to the output (default: single space).

    Returns:
        Formatted string, e.g. ' key1=value1 key2="value with spaces"'.
        Returns empty string if kwargs is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for k, v in kwargs.items():
        s = _truncate(v, max_value_length)
        if not s or " " in s or "=" in s or '"' in s or "'" in s:
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{k}="{escaped}"')
        else:
            parts.append(f"{k}={s}")

    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Formats log records as ``level logger message key=value ...``.

    Records without ``structured_kv`` (plain ``logging.getLogger()`` calls)
    are emitted with the same prefix so the output stays uniform.
    """

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


def configure_logging(level: int | str = logging.INFO, *, json_output: bool = False) -> None:
    """Install a ``StructuredFormatter`` handler on the ``emfguardian`` logger.

    Hosts that already configure logging can skip this. Calling it twice
    replaces the previously installed handler.

    Args:
        level: Log level for the ``emfguardian`` logger hierarchy.
        json_output: If True, records are left unformatted because
            ``Logger`` already renders JSON messages.
    """
    root = logging.getLogger("emfguardian")
    for handler in list(root.handlers):
        if getattr(handler, "_emfguardian_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler._emfguardian_handler = True  # type: ignore[attr-defined]
    if not json_output:
        handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
    root.setLevel(level)


class Logger:
    """Structured logger that appends keyword arguments as extra fields.

    Wraps a standard ``logging.Logger`` and formats keyword arguments as either
    key=value pairs or JSON. All public methods mirror the standard logging
    API with an added ``**kwargs`` parameter.

    Names are placed under the ``emfguardian`` namespace so a single handler
    installed by [configure_logging()][emfguardian.core.logger.configure_logging]
    covers every component.
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000
    _NAMESPACE: ClassVar[str] = "emfguardian"

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Component name (e.g. ``"relay_client"``). Prefixed with
                ``emfguardian.`` unless already namespaced.
            json_output: If True, emit JSON objects instead of key=value pairs.
            max_value_length: Maximum character length for individual values
                before truncation. Defaults to 1000.
        """
        if not name.startswith(self._NAMESPACE):
            name = f"{self._NAMESPACE}.{name}"
        if max_value_length is None:
            max_value_length = self._DEFAULT_MAX_VALUE_LENGTH
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = max_value_length

    @property
    def name(self) -> str:
        return self._logger.name

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "logger": self._logger.name,
            "message": msg,
            **{k: _truncate(v, self._max_value_length) for k, v in kwargs.items()},
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        if not kwargs:
            return {}
        truncated = {k: _truncate(v, self._max_value_length) for k, v in kwargs.items()}
        return {"structured_kv": truncated}

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._json_output:
            name = logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, name, kwargs), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra=self._make_extra(kwargs), exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log a DEBUG level message with optional key=value pairs."""
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log an INFO level message with optional key=value pairs."""
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log a WARNING level message with optional key=value pairs."""
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with optional key=value pairs."""
        self._log(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with the active exception traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)

"""
Metric sinks used by the client.

``NullTelemetry`` is the default and drops everything. ``LogTelemetry`` writes
each metric as a log record; the tags travel in a single ``tags`` extra
field so they never clash with ``LogRecord`` attributes.
"""

import logging
from typing import Any, Dict, Optional

Tags = Optional[Dict[str, Any]]


class NullTelemetry:
    def incr(self, name: str, tags: Tags = None) -> None:
        pass

    def decr(self, name: str, tags: Tags = None) -> None:
        pass

    def timing(self, name: str, value: float, tags: Tags = None) -> None:
        pass

    def count(self, name: str, value: int, tags: Tags = None) -> None:
        pass


class LogTelemetry(NullTelemetry):
    """Emits metrics through a standard logger at INFO level."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("telemetry")

    def _emit(self, name: str, kind: str, message: str, tags: Tags) -> None:
        fields = {"metric": True, "metric_name": name, "metric_type": kind}
        if tags:
            fields["tags"] = dict(tags)
        self.logger.info(message, extra=fields)

    def incr(self, name: str, tags: Tags = None) -> None:
        self._emit(name, "incr", "+1", tags)

    def decr(self, name: str, tags: Tags = None) -> None:
        self._emit(name, "decr", "-1", tags)

    def timing(self, name: str, value: float, tags: Tags = None) -> None:
        self._emit(name, "timing", f"{value * 1000:.1f}ms", tags)

    def count(self, name: str, value: int, tags: Tags = None) -> None:
        self._emit(name, "count", str(value), tags)

"""Progress/error notification sinks.

The pipeline reports through a :class:`Notifier`; rendering an indicator is
the caller's business. ``error`` messages describe degraded results (table
left alone or partly filled), so sinks should keep them visible longer.
"""

from __future__ import annotations

import logging
from typing import List, Protocol, Tuple

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def progress(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    def progress(self, message: str) -> None:
        logger.info("%s", message)

    def error(self, message: str) -> None:
        logger.warning("%s", message)


class RecordingNotifier:
    """Keeps every message; useful for reports and tests."""

    def __init__(self) -> None:
        self.messages: List[Tuple[str, str]] = []

    def progress(self, message: str) -> None:
        self.messages.append(("progress", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    @property
    def errors(self) -> List[str]:
        return [text for level, text in self.messages if level == "error"]


__all__ = ["LoggingNotifier", "Notifier", "RecordingNotifier"]

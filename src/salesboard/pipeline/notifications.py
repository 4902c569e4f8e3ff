"""User-facing notifications for pipeline operations.

The UI shell supplies a Notifier (toast, banner, ...). LogNotifier is the
default and only writes structured log entries.
"""

from __future__ import annotations

from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


class Notifier(Protocol):
    """Transient user notification sink."""

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LogNotifier:
    """Notifier that records notifications in the structured log."""

    def success(self, message: str) -> None:
        logger.info("notification.success", message=message)

    def error(self, message: str) -> None:
        logger.warning("notification.error", message=message)

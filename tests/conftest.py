"""Shared test fixtures for the pipeline board and deal store tests.

Provides:
- A mocked DealStore (AsyncMock with the DealStore interface)
- A recording Notifier capturing user-visible messages
- The default pipeline stage order

No database or network access: every remote call is mocked.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from src.salesboard.deals.store.adapter import DealStore

STAGE_ORDER = ["lead", "qualification", "proposal", "negotiation", "closed_won"]


class RecordingNotifier:
    """Notifier that keeps every message for assertions."""

    def __init__(self) -> None:
        self.successes: list[str] = []
        self.errors: list[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture
def store() -> AsyncMock:
    """DealStore mock; update_positions succeeds unless a test overrides it."""
    mock = AsyncMock(spec=DealStore)
    mock.update_positions.return_value = None
    return mock


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def stage_order() -> list[str]:
    return list(STAGE_ORDER)

"""Deal store exceptions."""

from __future__ import annotations


class DealStoreError(RuntimeError):
    """Raised when the remote store rejects or fails a request."""


class DealNotFoundError(DealStoreError):
    """Raised when a requested deal does not exist in the remote store."""

    def __init__(self, deal_id: str) -> None:
        self.deal_id = deal_id
        super().__init__(f"Deal not found: {deal_id}")

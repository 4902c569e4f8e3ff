"""Deal store abstract base class -- the remote store interface every backend implements.

The pipeline reconciler, the deal service and the won-deal sale sync only
talk to this interface. Backends: the hosted Supabase tables (default) and a
self-hosted Postgres database through DealRepository.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.salesboard.deals.schemas import (
    Deal,
    DealCreate,
    DealPositionUpdate,
    SaleCreate,
    SaleRead,
)


class DealStore(ABC):
    """Abstract interface for remote deal storage.

    Implementations wrap backend failures in DealStoreError and raise
    DealNotFoundError for writes that target a missing deal.

    Methods:
        list_deals: Fetch a tenant's deals ordered by position.
        get_deal: Fetch one deal by ID.
        next_position: Position that appends a new deal to the end of a stage.
        create_deal: Insert a deal at a position.
        update_positions: Persist stage/position for one or more deals.
        update_stage: Move a deal to a stage, optionally with a loss reason.
        delete_deal: Remove a deal.
        find_sale: Look up a sale by seller and notes marker.
        create_sale: Insert a completed sale.
    """

    @abstractmethod
    async def list_deals(self, company_id: str | None = None) -> list[Deal]:
        """Fetch deals for a tenant ordered by position ascending."""
        ...

    @abstractmethod
    async def get_deal(self, deal_id: str) -> Deal | None:
        """Fetch a deal by ID."""
        ...

    @abstractmethod
    async def next_position(self, company_id: str | None, stage: str) -> int:
        """Return max(position) + 1 within the stage, or 0 if it is empty."""
        ...

    @abstractmethod
    async def create_deal(self, data: DealCreate, position: int) -> Deal:
        """Insert a deal, return the stored record."""
        ...

    @abstractmethod
    async def update_positions(self, updates: list[DealPositionUpdate]) -> None:
        """Persist stage/position changes, in list order."""
        ...

    @abstractmethod
    async def update_stage(
        self, deal_id: str, stage: str, loss_reason: str | None = None
    ) -> Deal:
        """Set a deal's stage (and loss reason), return the stored record."""
        ...

    @abstractmethod
    async def delete_deal(self, deal_id: str) -> bool:
        """Delete a deal, return True if it existed."""
        ...

    @abstractmethod
    async def find_sale(self, user_id: str, notes: str) -> SaleRead | None:
        """Find a seller's sale carrying the given notes marker."""
        ...

    @abstractmethod
    async def create_sale(self, data: SaleCreate) -> SaleRead:
        """Insert a completed sale, return the stored record."""
        ...

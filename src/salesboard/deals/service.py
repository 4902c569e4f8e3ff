"""Deal lifecycle actions triggered explicitly by the user.

Creation places the new deal at the end of its stage; losing a deal moves
it to the lost stage with the chosen reason; deletion removes it. Stage and
position changes from dragging belong to the pipeline reconciler, not here.
"""

from __future__ import annotations

import structlog

from src.salesboard.deals.errors import DealNotFoundError
from src.salesboard.deals.schemas import Deal, DealCreate, DealLoss
from src.salesboard.deals.store.adapter import DealStore
from src.salesboard.pipeline.notifications import LogNotifier, Notifier

logger = structlog.get_logger(__name__)

DEAL_CREATED_MESSAGE = "Deal created"
DEAL_LOST_MESSAGE = "Deal marked as lost"
DEAL_DELETED_MESSAGE = "Deal deleted"


class DealService:
    """Tenant-scoped deal creation, loss and deletion.

    Args:
        store: Remote deal store.
        company_id: Tenant scope stamped on new deals and used for positioning.
        lost_stage_id: Stage a lost deal is moved to.
        notifier: Receives a success message after each completed action.
    """

    def __init__(
        self,
        store: DealStore,
        company_id: str | None = None,
        lost_stage_id: str = "closed_lost",
        notifier: Notifier | None = None,
    ) -> None:
        self._store = store
        self._company_id = company_id
        self._lost_stage_id = lost_stage_id
        self._notifier = notifier or LogNotifier()

    async def list_deals(self) -> list[Deal]:
        return await self._store.list_deals(self._company_id)

    async def create_deal(self, data: DealCreate) -> Deal:
        """Insert a deal at the end of its stage (explicit positions are honoured)."""
        if data.company_id is None and self._company_id is not None:
            data = data.model_copy(update={"company_id": self._company_id})

        position = data.position
        if position is None:
            position = await self._store.next_position(data.company_id, data.stage)

        deal = await self._store.create_deal(data, position)
        logger.info(
            "deal_service.deal_created",
            deal_id=deal.id,
            stage=deal.stage,
            position=deal.position,
        )
        self._notifier.success(DEAL_CREATED_MESSAGE)
        return deal

    async def mark_lost(self, deal_id: str, loss: DealLoss) -> Deal:
        """Close a deal as lost, recording the reason text.

        Raises:
            DealNotFoundError: If the deal does not exist.
        """
        deal = await self._store.update_stage(
            deal_id, self._lost_stage_id, loss_reason=loss.reason_text()
        )
        logger.info(
            "deal_service.deal_lost",
            deal_id=deal_id,
            reason=loss.reason.value,
        )
        self._notifier.success(DEAL_LOST_MESSAGE)
        return deal

    async def delete_deal(self, deal_id: str) -> None:
        """Remove a deal.

        Raises:
            DealNotFoundError: If the deal does not exist.
        """
        if not await self._store.delete_deal(deal_id):
            raise DealNotFoundError(deal_id)
        logger.info("deal_service.deal_deleted", deal_id=deal_id)
        self._notifier.success(DEAL_DELETED_MESSAGE)

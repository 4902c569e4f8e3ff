"""Won-deal -> sale synchronization.

Registered as an ``on_won`` hook on the pipeline reconciler: when a deal is
won, record an approved sale for its owner unless one already exists. The
sale's notes carry a per-deal marker that makes the sync idempotent.
"""

from __future__ import annotations

from datetime import date

import structlog

from src.salesboard.config import Settings, get_settings
from src.salesboard.deals.schemas import Deal, SaleCreate, SaleRead
from src.salesboard.deals.store.adapter import DealStore

logger = structlog.get_logger(__name__)

SALE_MARKER_TEMPLATE = "Sincronizado automaticamente do CRM (deal {deal_id})"


def sale_marker(deal_id: str, template: str = SALE_MARKER_TEMPLATE) -> str:
    """Notes text identifying the sale created for a deal."""
    return template.format(deal_id=deal_id)


class WonDealSaleSync:
    """Creates the sale record for a won deal, at most once per deal.

    Args:
        store: Remote store holding deals and sales.
        marker_template: Notes template with a {deal_id} placeholder. Existing
            sales are matched on the exact text, so changing it breaks
            idempotency for deals already synced.
    """

    def __init__(self, store: DealStore, marker_template: str = SALE_MARKER_TEMPLATE) -> None:
        self._store = store
        self._marker_template = marker_template

    @classmethod
    def from_settings(cls, store: DealStore, settings: Settings | None = None) -> WonDealSaleSync:
        settings = settings or get_settings()
        return cls(store, marker_template=settings.SALE_SYNC_MARKER)

    async def __call__(self, deal: Deal) -> SaleRead | None:
        return await self.sync(deal)

    async def sync(self, deal: Deal, today: date | None = None) -> SaleRead | None:
        """Record a sale for ``deal``; None if skipped or already recorded."""
        if not deal.id or not deal.user_id:
            return None

        marker = sale_marker(deal.id, self._marker_template)
        existing = await self._store.find_sale(deal.user_id, marker)
        if existing is not None:
            logger.debug("sales_sync.already_recorded", deal_id=deal.id, sale_id=existing.id)
            return None

        sale = await self._store.create_sale(
            SaleCreate(
                user_id=deal.user_id,
                company_id=deal.company_id,
                customer_name=deal.customer_name or deal.title or "Customer",
                product_id=deal.product_id,
                product_name=deal.title or "CRM deal",
                amount=deal.value,
                notes=marker,
                sale_date=today or date.today(),
            )
        )
        logger.info(
            "sales_sync.sale_recorded",
            deal_id=deal.id,
            sale_id=sale.id,
            amount=str(sale.amount),
        )
        return sale

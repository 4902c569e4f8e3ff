"""PostgreSQL deal store -- self-hosted storage wrapping DealRepository.

The PostgresDealStore delegates every operation to DealRepository and
wraps SQLAlchemy failures in DealStoreError so callers see the same error
contract as with the hosted backend.
"""

from __future__ import annotations

import structlog
from sqlalchemy.exc import SQLAlchemyError

from src.salesboard.deals.errors import DealStoreError
from src.salesboard.deals.repository import DealRepository
from src.salesboard.deals.schemas import (
    Deal,
    DealCreate,
    DealPositionUpdate,
    SaleCreate,
    SaleRead,
)
from src.salesboard.deals.store.adapter import DealStore

logger = structlog.get_logger(__name__)


class PostgresDealStore(DealStore):
    """DealStore backed by PostgreSQL via DealRepository.

    Args:
        repository: DealRepository instance for database operations.
    """

    def __init__(self, repository: DealRepository) -> None:
        self._repo = repository

    async def list_deals(self, company_id: str | None = None) -> list[Deal]:
        try:
            return await self._repo.list_deals(company_id)
        except SQLAlchemyError as exc:
            raise DealStoreError(f"list_deals failed: {exc}") from exc

    async def get_deal(self, deal_id: str) -> Deal | None:
        try:
            return await self._repo.get_deal(deal_id)
        except SQLAlchemyError as exc:
            raise DealStoreError(f"get_deal failed: {exc}") from exc

    async def next_position(self, company_id: str | None, stage: str) -> int:
        try:
            current = await self._repo.max_position(company_id, stage)
        except SQLAlchemyError as exc:
            raise DealStoreError(f"next_position failed: {exc}") from exc
        return 0 if current is None else current + 1

    async def create_deal(self, data: DealCreate, position: int) -> Deal:
        try:
            deal = await self._repo.create_deal(data, position)
        except SQLAlchemyError as exc:
            raise DealStoreError(f"create_deal failed: {exc}") from exc
        logger.info("postgres_store.deal_created", deal_id=deal.id, stage=deal.stage)
        return deal

    async def update_positions(self, updates: list[DealPositionUpdate]) -> None:
        try:
            await self._repo.update_positions(updates)
        except SQLAlchemyError as exc:
            raise DealStoreError(f"update_positions failed: {exc}") from exc

    async def update_stage(
        self, deal_id: str, stage: str, loss_reason: str | None = None
    ) -> Deal:
        try:
            return await self._repo.update_stage(deal_id, stage, loss_reason)
        except SQLAlchemyError as exc:
            raise DealStoreError(f"update_stage failed: {exc}") from exc

    async def delete_deal(self, deal_id: str) -> bool:
        try:
            return await self._repo.delete_deal(deal_id)
        except SQLAlchemyError as exc:
            raise DealStoreError(f"delete_deal failed: {exc}") from exc

    async def find_sale(self, user_id: str, notes: str) -> SaleRead | None:
        try:
            return await self._repo.find_sale(user_id, notes)
        except SQLAlchemyError as exc:
            raise DealStoreError(f"find_sale failed: {exc}") from exc

    async def create_sale(self, data: SaleCreate) -> SaleRead:
        try:
            return await self._repo.create_sale(data)
        except SQLAlchemyError as exc:
            raise DealStoreError(f"create_sale failed: {exc}") from exc

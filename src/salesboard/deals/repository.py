"""Deal repository -- async CRUD for deals and sales over SQLAlchemy.

Provides DealRepository with the session_factory callable pattern: every
method opens a session from the factory, runs its statements and commits.
Handles serialization between SQLAlchemy models and the pydantic schemas.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.salesboard.deals.errors import DealNotFoundError
from src.salesboard.deals.models import DealModel, SaleModel
from src.salesboard.deals.schemas import (
    Deal,
    DealCreate,
    DealPositionUpdate,
    SaleCreate,
    SaleRead,
)

logger = structlog.get_logger(__name__)


# ── Serialization Helpers ───────────────────────────────────────────────────


def _optional_uuid(value: str | None) -> uuid.UUID | None:
    return uuid.UUID(value) if value else None


def _model_to_deal(model: DealModel) -> Deal:
    """Convert DealModel to Deal schema."""
    return Deal(
        id=str(model.id),
        title=model.title,
        value=model.value or 0,
        customer_name=model.customer_name,
        customer_email=model.customer_email,
        customer_phone=model.customer_phone,
        stage=model.stage,
        position=model.position or 0,
        user_id=str(model.user_id),
        company_id=str(model.company_id) if model.company_id else None,
        product_id=str(model.product_id) if model.product_id else None,
        notes=model.notes,
        expected_close_date=model.expected_close_date,
        probability=model.probability if model.probability is not None else 50,
        loss_reason=model.loss_reason,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _model_to_sale(model: SaleModel) -> SaleRead:
    """Convert SaleModel to SaleRead schema."""
    return SaleRead(
        id=str(model.id),
        user_id=str(model.user_id),
        company_id=str(model.company_id) if model.company_id else None,
        customer_name=model.customer_name,
        product_id=str(model.product_id) if model.product_id else None,
        product_name=model.product_name,
        amount=model.amount,
        platform=model.platform or "",
        payment_method=model.payment_method,
        status=model.status,
        notes=model.notes,
        sale_date=model.sale_date,
        created_at=model.created_at,
    )


# ── Repository ──────────────────────────────────────────────────────────────


class DealRepository:
    """Async CRUD operations for deals and sales.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    # ── Deals ───────────────────────────────────────────────────────────────

    async def list_deals(self, company_id: str | None = None) -> list[Deal]:
        """List deals ordered by position, optionally scoped to a company."""
        async for session in self._session_factory():
            stmt = select(DealModel).order_by(DealModel.position.asc())
            if company_id is not None:
                stmt = stmt.where(DealModel.company_id == uuid.UUID(company_id))
            result = await session.execute(stmt)
            return [_model_to_deal(m) for m in result.scalars().all()]
        return []

    async def get_deal(self, deal_id: str) -> Deal | None:
        """Get a deal by ID, or None if it does not exist."""
        async for session in self._session_factory():
            stmt = select(DealModel).where(DealModel.id == uuid.UUID(deal_id))
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return _model_to_deal(model)
        return None

    async def max_position(self, company_id: str | None, stage: str) -> int | None:
        """Highest position currently used in a stage, None if the stage is empty."""
        async for session in self._session_factory():
            stmt = select(func.max(DealModel.position)).where(DealModel.stage == stage)
            if company_id is not None:
                stmt = stmt.where(DealModel.company_id == uuid.UUID(company_id))
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
        return None

    async def create_deal(self, data: DealCreate, position: int) -> Deal:
        """Insert a deal at the given position."""
        async for session in self._session_factory():
            model = DealModel(
                company_id=_optional_uuid(data.company_id),
                user_id=uuid.UUID(data.user_id),
                title=data.title,
                value=data.value,
                customer_name=data.customer_name,
                customer_email=data.customer_email,
                customer_phone=data.customer_phone,
                stage=data.stage,
                position=position,
                product_id=_optional_uuid(data.product_id),
                notes=data.notes,
                expected_close_date=data.expected_close_date,
                probability=data.probability,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return _model_to_deal(model)
        raise RuntimeError("session factory yielded no session")

    async def update_positions(self, updates: list[DealPositionUpdate]) -> None:
        """Write stage/position for several deals in one transaction.

        Raises:
            DealNotFoundError: If any deal does not exist (nothing is committed).
        """
        async for session in self._session_factory():
            for item in updates:
                stmt = (
                    update(DealModel)
                    .where(DealModel.id == uuid.UUID(item.deal_id))
                    .values(stage=item.stage, position=item.position)
                )
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    await session.rollback()
                    raise DealNotFoundError(item.deal_id)
            await session.commit()
            logger.debug("deal_repository.positions_updated", count=len(updates))

    async def update_stage(
        self, deal_id: str, stage: str, loss_reason: str | None = None
    ) -> Deal:
        """Move a deal to a stage, optionally recording a loss reason.

        Raises:
            DealNotFoundError: If the deal does not exist.
        """
        async for session in self._session_factory():
            stmt = select(DealModel).where(DealModel.id == uuid.UUID(deal_id))
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                raise DealNotFoundError(deal_id)

            model.stage = stage
            if loss_reason is not None:
                model.loss_reason = loss_reason
            await session.commit()
            await session.refresh(model)
            return _model_to_deal(model)
        raise RuntimeError("session factory yielded no session")

    async def delete_deal(self, deal_id: str) -> bool:
        """Delete a deal. Returns True if a row was removed."""
        async for session in self._session_factory():
            stmt = delete(DealModel).where(DealModel.id == uuid.UUID(deal_id))
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount > 0
        return False

    # ── Sales ───────────────────────────────────────────────────────────────

    async def find_sale(self, user_id: str, notes: str) -> SaleRead | None:
        """Find a sale for a seller by its notes marker."""
        async for session in self._session_factory():
            stmt = (
                select(SaleModel)
                .where(
                    SaleModel.user_id == uuid.UUID(user_id),
                    SaleModel.notes == notes,
                )
                .limit(1)
            )
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return _model_to_sale(model)
        return None

    async def create_sale(self, data: SaleCreate) -> SaleRead:
        """Insert a completed sale."""
        async for session in self._session_factory():
            model = SaleModel(
                company_id=_optional_uuid(data.company_id),
                user_id=uuid.UUID(data.user_id),
                customer_name=data.customer_name,
                product_id=_optional_uuid(data.product_id),
                product_name=data.product_name,
                amount=data.amount,
                platform=data.platform,
                payment_method=data.payment_method.value,
                status=data.status.value,
                notes=data.notes,
                sale_date=data.sale_date,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return _model_to_sale(model)
        raise RuntimeError("session factory yielded no session")

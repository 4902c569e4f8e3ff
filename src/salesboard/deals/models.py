"""Deal persistence models for the self-hosted Postgres store.

Two SQLAlchemy models mirroring the hosted backend's tables:
- DealModel: Pipeline deals, ordered within a stage by ``position``
- SaleModel: Completed sales recorded from won deals

Tenant scoping is by ``company_id`` (nullable for single-tenant installs).
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.salesboard.core.database import Base


class DealModel(Base):
    """Sales opportunity tracked through the pipeline stages.

    ``stage`` holds one of the accepted stage ids; ``position`` orders deals
    within a stage and is what the board query sorts by.
    """

    __tablename__ = "deals"
    __table_args__ = (
        Index("ix_deals_company_stage_position", "company_id", "stage", "position"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    company_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    value: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), default=0, server_default=text("0")
    )
    customer_name: Mapped[str] = mapped_column(String(300), nullable=False)
    customer_email: Mapped[str | None] = mapped_column(String(300), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    stage: Mapped[str] = mapped_column(
        String(50), default="lead", server_default=text("'lead'")
    )
    position: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0")
    )
    product_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    expected_close_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    probability: Mapped[int] = mapped_column(
        Integer, default=50, server_default=text("50")
    )
    loss_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class SaleModel(Base):
    """Completed sale; ``notes`` carries the won-deal idempotency marker."""

    __tablename__ = "sales"
    __table_args__ = (
        Index("ix_sales_user_notes", "user_id", "notes"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    company_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(300), nullable=False)
    product_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    product_name: Mapped[str] = mapped_column(String(300), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    platform: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), default="Aprovado", server_default=text("'Aprovado'")
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    sale_date: Mapped[date] = mapped_column(
        Date, server_default=func.current_date()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

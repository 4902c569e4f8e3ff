"""Pydantic schemas for deals, stage moves, losses and won-deal sales.

Defines all structured types for the deal lifecycle:
- Enums: LossReason, SaleStatus, PaymentMethod
- Deals: Deal (immutable working-set record), DealCreate, DealPositionUpdate, DealLoss
- Sales: SaleCreate, SaleRead (records produced when a deal is won)
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Enums ───────────────────────────────────────────────────────────────────


class LossReason(str, Enum):
    """Why a deal was lost (picked by the seller when closing it as lost)."""

    PRICE = "price"
    COMPETITOR = "competitor"
    TIMING = "timing"
    BUDGET = "budget"
    NO_RESPONSE = "no_response"
    NOT_QUALIFIED = "not_qualified"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _LOSS_REASON_LABELS[self]


_LOSS_REASON_LABELS: dict[LossReason, str] = {
    LossReason.PRICE: "Price too high",
    LossReason.COMPETITOR: "Chose a competitor",
    LossReason.TIMING: "Bad timing",
    LossReason.BUDGET: "No budget",
    LossReason.NO_RESPONSE: "No response",
    LossReason.NOT_QUALIFIED: "Not qualified",
    LossReason.OTHER: "Other reason",
}


class SaleStatus(str, Enum):
    APPROVED = "Aprovado"
    PENDING = "Pendente"
    CANCELLED = "Cancelado"


class PaymentMethod(str, Enum):
    PIX = "PIX"
    CREDIT_CARD = "Cartão de Crédito"
    BOLETO = "Boleto"


# ── Deal Schemas ────────────────────────────────────────────────────────────


class Deal(BaseModel):
    """A sales opportunity as held in the pipeline working set.

    Frozen: every stage/position change produces a new instance, so a
    captured snapshot can never be mutated behind the reconciler's back.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = "Untitled"
    value: Decimal = Field(default=Decimal("0"), ge=0)
    customer_name: str = "Customer"
    customer_email: str | None = None
    customer_phone: str | None = None
    stage: str
    position: int = 0
    user_id: str
    company_id: str | None = None
    product_id: str | None = None
    notes: str | None = None
    expected_close_date: date | None = None
    probability: int = Field(default=50, ge=0, le=100)
    loss_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Deal:
        """Build a Deal from a raw store row, defaulting empty columns."""
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "Untitled",
            value=Decimal(str(row.get("value") or 0)),
            customer_name=row.get("customer_name") or "Customer",
            customer_email=row.get("customer_email"),
            customer_phone=row.get("customer_phone"),
            stage=row["stage"],
            position=row.get("position") or 0,
            user_id=str(row["user_id"]),
            company_id=(
                str(row["company_id"]) if row.get("company_id") is not None else None
            ),
            product_id=(
                str(row["product_id"]) if row.get("product_id") is not None else None
            ),
            notes=row.get("notes"),
            expected_close_date=row.get("expected_close_date"),
            probability=50 if row.get("probability") is None else row["probability"],
            loss_reason=row.get("loss_reason"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


class DealCreate(BaseModel):
    """Schema for creating a new deal (position is assigned by the service)."""

    title: str = Field(min_length=1)
    value: Decimal = Field(default=Decimal("0"), ge=0)
    customer_name: str = Field(min_length=1)
    customer_email: str | None = None
    customer_phone: str | None = None
    stage: str = "lead"
    user_id: str
    company_id: str | None = None
    product_id: str | None = None
    notes: str | None = None
    expected_close_date: date | None = None
    probability: int = Field(default=50, ge=0, le=100)
    position: int | None = None

    @field_validator("customer_email")
    @classmethod
    def _blank_email_is_none(cls, value: str | None) -> str | None:
        return value or None


class DealPositionUpdate(BaseModel):
    """A single stage/position write sent to the remote store."""

    deal_id: str
    stage: str
    position: int = Field(ge=0)


class DealLoss(BaseModel):
    """A deal closed as lost, with the reason shown to the team."""

    reason: LossReason
    notes: str = ""

    def reason_text(self) -> str:
        """Stored text: ``"<label>: <notes>"`` or just the label."""
        label = self.reason.label
        notes = self.notes.strip()
        return f"{label}: {notes}" if notes else label


# ── Sale Schemas ────────────────────────────────────────────────────────────


class SaleCreate(BaseModel):
    """A completed sale, recorded when a deal is won."""

    user_id: str
    company_id: str | None = None
    customer_name: str
    product_id: str | None = None
    product_name: str
    amount: Decimal = Field(ge=0)
    platform: str = "Pix/Boleto"
    payment_method: PaymentMethod = PaymentMethod.PIX
    status: SaleStatus = SaleStatus.APPROVED
    notes: str | None = None
    sale_date: date


class SaleRead(SaleCreate):
    """Schema for reading a sale (includes persisted fields)."""

    id: str
    created_at: datetime | None = None

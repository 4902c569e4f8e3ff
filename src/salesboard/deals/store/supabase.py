"""Supabase deal store -- the hosted backend's ``deals`` and ``vendas`` tables.

All calls go through the async PostgREST query builder. Any client or API
failure is wrapped in DealStoreError; request timeouts are governed by the
client's own PostgREST timeout.

The sales table keeps the hosted schema's column names, mapped here from
SaleCreate/SaleRead fields by SALE_COLUMN_MAP.
"""

from __future__ import annotations

from typing import Any

import structlog
from supabase import AsyncClient

from src.salesboard.deals.errors import DealNotFoundError, DealStoreError
from src.salesboard.deals.schemas import (
    Deal,
    DealCreate,
    DealPositionUpdate,
    SaleCreate,
    SaleRead,
    SaleStatus,
)
from src.salesboard.deals.store.adapter import DealStore

logger = structlog.get_logger(__name__)

DEALS_TABLE = "deals"
SALES_TABLE = "vendas"

# SaleCreate field -> hosted column
SALE_COLUMN_MAP: dict[str, str] = {
    "user_id": "user_id",
    "company_id": "company_id",
    "customer_name": "cliente_nome",
    "product_id": "produto_id",
    "product_name": "produto_nome",
    "amount": "valor",
    "platform": "plataforma",
    "payment_method": "forma_pagamento",
    "status": "status",
    "notes": "observacoes",
    "sale_date": "data_venda",
}


def sale_to_row(data: SaleCreate) -> dict[str, Any]:
    """Convert SaleCreate to a hosted ``vendas`` row."""
    payload = data.model_dump(mode="json")
    return {column: payload[field] for field, column in SALE_COLUMN_MAP.items()}


def row_to_sale(row: dict[str, Any]) -> SaleRead:
    """Convert a hosted ``vendas`` row to SaleRead."""
    values = {field: row.get(column) for field, column in SALE_COLUMN_MAP.items()}
    values["platform"] = values["platform"] or ""
    values["status"] = values["status"] or SaleStatus.APPROVED
    return SaleRead(id=str(row["id"]), created_at=row.get("created_at"), **values)


class SupabaseDealStore(DealStore):
    """DealStore backed by the hosted Supabase tables.

    Args:
        client: Async Supabase client (see core.supabase.get_supabase_client).
    """

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def _execute(self, operation: str, query: Any) -> list[dict[str, Any]]:
        """Run a query builder and return its rows, wrapping failures."""
        try:
            response = await query.execute()
        except Exception as exc:
            logger.warning("supabase_store.request_failed", operation=operation, error=str(exc))
            raise DealStoreError(f"{operation} failed: {exc}") from exc
        return list(response.data or [])

    async def list_deals(self, company_id: str | None = None) -> list[Deal]:
        query = (
            self._client.table(DEALS_TABLE)
            .select("*")
            .order("position", desc=False)
        )
        if company_id:
            query = query.eq("company_id", company_id)
        rows = await self._execute("list_deals", query)
        return [Deal.from_row(row) for row in rows]

    async def get_deal(self, deal_id: str) -> Deal | None:
        query = self._client.table(DEALS_TABLE).select("*").eq("id", deal_id).limit(1)
        rows = await self._execute("get_deal", query)
        return Deal.from_row(rows[0]) if rows else None

    async def next_position(self, company_id: str | None, stage: str) -> int:
        query = (
            self._client.table(DEALS_TABLE)
            .select("position")
            .eq("stage", stage)
            .order("position", desc=True)
            .limit(1)
        )
        if company_id:
            query = query.eq("company_id", company_id)
        rows = await self._execute("next_position", query)
        if not rows or rows[0].get("position") is None:
            return 0
        return int(rows[0]["position"]) + 1

    async def create_deal(self, data: DealCreate, position: int) -> Deal:
        payload = data.model_dump(mode="json", exclude={"position"})
        payload["position"] = position
        rows = await self._execute(
            "create_deal", self._client.table(DEALS_TABLE).insert(payload)
        )
        if not rows:
            raise DealStoreError("create_deal returned no row")
        deal = Deal.from_row(rows[0])
        logger.info("supabase_store.deal_created", deal_id=deal.id, stage=deal.stage)
        return deal

    async def update_positions(self, updates: list[DealPositionUpdate]) -> None:
        # PostgREST has no multi-row update with per-row values; the first
        # update is the moved deal, so a rejected move writes nothing else.
        for item in updates:
            query = (
                self._client.table(DEALS_TABLE)
                .update({"stage": item.stage, "position": item.position})
                .eq("id", item.deal_id)
            )
            rows = await self._execute("update_positions", query)
            if not rows:
                raise DealNotFoundError(item.deal_id)
        logger.debug("supabase_store.positions_updated", count=len(updates))

    async def update_stage(
        self, deal_id: str, stage: str, loss_reason: str | None = None
    ) -> Deal:
        values: dict[str, Any] = {"stage": stage}
        if loss_reason is not None:
            values["loss_reason"] = loss_reason
        query = self._client.table(DEALS_TABLE).update(values).eq("id", deal_id)
        rows = await self._execute("update_stage", query)
        if not rows:
            raise DealNotFoundError(deal_id)
        return Deal.from_row(rows[0])

    async def delete_deal(self, deal_id: str) -> bool:
        query = self._client.table(DEALS_TABLE).delete().eq("id", deal_id)
        rows = await self._execute("delete_deal", query)
        return bool(rows)

    async def find_sale(self, user_id: str, notes: str) -> SaleRead | None:
        query = (
            self._client.table(SALES_TABLE)
            .select("*")
            .eq("observacoes", notes)
            .eq("user_id", user_id)
            .limit(1)
        )
        rows = await self._execute("find_sale", query)
        return row_to_sale(rows[0]) if rows else None

    async def create_sale(self, data: SaleCreate) -> SaleRead:
        rows = await self._execute(
            "create_sale", self._client.table(SALES_TABLE).insert(sale_to_row(data))
        )
        if not rows:
            raise DealStoreError("create_sale returned no row")
        return row_to_sale(rows[0])

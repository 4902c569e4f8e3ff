"""Unit tests for PipelineBoard: drag controller events, refresh and column views.

The DealStore is an AsyncMock -- no real database or API calls.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from src.salesboard.config import Settings
from src.salesboard.deals.errors import DealStoreError
from src.salesboard.deals.schemas import Deal
from src.salesboard.pipeline.board import PipelineBoard
from src.salesboard.pipeline.config_store import StageConfigStore
from src.salesboard.pipeline.reconciler import CommitStatus
from src.salesboard.pipeline.stages import DEFAULT_STAGES, StageDefinition


# ── Helpers ────────────────────────────────────────────────────────────────


def _make_deal(deal_id: str, stage: str = "lead", position: int = 0, **overrides) -> Deal:
    """Create a test Deal with sensible defaults."""
    defaults = {
        "id": deal_id,
        "title": f"Deal {deal_id}",
        "value": Decimal("1000"),
        "stage": stage,
        "position": position,
        "user_id": "user-1",
        "company_id": "company-1",
    }
    defaults.update(overrides)
    return Deal(**defaults)


async def _make_board(store, notifier, **kwargs) -> PipelineBoard:
    store.list_deals.return_value = [
        _make_deal("A", "lead", 0),
        _make_deal("B", "lead", 1),
        _make_deal("C", "qualification", 0, value=Decimal("500")),
    ]
    board = PipelineBoard(
        store, DEFAULT_STAGES, company_id="company-1", notifier=notifier, **kwargs
    )
    await board.refresh()
    return board


def _ids(board: PipelineBoard, stage: str) -> list[str]:
    return [d.id for d in board.reconciler.grouped()[stage]]


# ── Refresh ────────────────────────────────────────────────────────────────


class TestRefresh:
    async def test_refresh_fetches_tenant_deals(self, store, notifier):
        board = await _make_board(store, notifier)
        store.list_deals.assert_awaited_once_with("company-1")
        assert _ids(board, "lead") == ["A", "B"]

    async def test_refresh_failure_keeps_working_set(self, store, notifier):
        board = await _make_board(store, notifier)
        before = board.reconciler.deals
        store.list_deals.side_effect = DealStoreError("offline")

        with pytest.raises(DealStoreError):
            await board.refresh()

        assert board.reconciler.deals == before


# ── Drop target resolution ─────────────────────────────────────────────────


class TestResolveDropTarget:
    async def test_stage_column_appends_to_end(self, store, notifier):
        board = await _make_board(store, notifier)
        assert board.resolve_drop_target("lead") == ("lead", 2)
        assert board.resolve_drop_target("proposal") == ("proposal", 0)

    async def test_deal_target_uses_its_stage_and_index(self, store, notifier):
        board = await _make_board(store, notifier)
        assert board.resolve_drop_target("B") == ("lead", 1)
        assert board.resolve_drop_target("C") == ("qualification", 0)

    async def test_unknown_target(self, store, notifier):
        board = await _make_board(store, notifier)
        assert board.resolve_drop_target("nowhere") is None


# ── Drag events ────────────────────────────────────────────────────────────


class TestDragEvents:
    async def test_drop_on_column_moves_deal_to_end(self, store, notifier):
        board = await _make_board(store, notifier)
        board.on_drag_start("A")

        outcome = await board.on_drag_end("A", "qualification")

        assert outcome.status == CommitStatus.COMMITTED
        assert _ids(board, "qualification") == ["C", "A"]
        assert board.reconciler.active_deal is None

    async def test_drop_on_deal_takes_its_place(self, store, notifier):
        board = await _make_board(store, notifier)
        outcome = await board.on_drag_end("B", "C")

        assert outcome.status == CommitStatus.COMMITTED
        assert _ids(board, "qualification") == ["B", "C"]
        assert _ids(board, "lead") == ["A"]

    async def test_drop_on_own_column_when_last_is_noop(self, store, notifier):
        board = await _make_board(store, notifier)
        outcome = await board.on_drag_end("B", "lead")
        assert outcome.status == CommitStatus.NOOP
        store.update_positions.assert_not_awaited()

    async def test_drop_over_nothing_changes_nothing(self, store, notifier):
        board = await _make_board(store, notifier)
        board.on_drag_start("A")
        before = board.reconciler.deals

        assert await board.on_drag_end("A", None) is None

        assert board.reconciler.deals == before
        assert board.reconciler.active_deal is None
        store.update_positions.assert_not_awaited()

    async def test_drag_cancel_returns_to_idle(self, store, notifier):
        board = await _make_board(store, notifier)
        board.on_drag_start("A")
        board.on_drag_cancel()
        assert board.reconciler.active_deal is None

    async def test_drop_on_unknown_target_is_ignored(self, store, notifier):
        board = await _make_board(store, notifier)
        assert await board.on_drag_end("A", "ghost") is None
        store.update_positions.assert_not_awaited()

    async def test_failed_drop_rolls_back(self, store, notifier):
        board = await _make_board(store, notifier)
        store.update_positions.side_effect = DealStoreError("denied")
        before = board.reconciler.deals

        outcome = await board.on_drag_end("A", "proposal")

        assert outcome.status == CommitStatus.ROLLED_BACK
        assert board.reconciler.deals == before
        assert len(notifier.errors) == 1

    async def test_drags_serialized_while_commit_pending(self, store, notifier):
        board = await _make_board(store, notifier)
        release = asyncio.Event()

        async def slow_write(_updates):
            await release.wait()

        store.update_positions.side_effect = slow_write
        first = asyncio.create_task(board.on_drag_end("A", "proposal"))
        await asyncio.sleep(0)

        board.on_drag_start("C")
        assert board.reconciler.active_deal is None
        assert await board.on_drag_end("C", "negotiation") is None

        release.set()
        assert (await first).status == CommitStatus.COMMITTED
        store.update_positions.assert_awaited_once()


# ── Columns and stage config ───────────────────────────────────────────────


class TestColumns:
    async def test_columns_follow_configured_stages(self, store, notifier):
        board = await _make_board(store, notifier)
        columns = board.columns()

        assert [c.stage.id for c in columns] == [s.id for s in DEFAULT_STAGES]
        lead = columns[0]
        assert [d.id for d in lead.deals] == ["A", "B"]
        assert lead.totals.count == 2
        assert lead.totals.value == Decimal("2000")
        assert columns[2].totals.count == 0

    async def test_pipeline_total(self, store, notifier):
        board = await _make_board(store, notifier)
        assert board.pipeline_total() == Decimal("2500")

    async def test_update_stages_regroups_and_persists(self, store, notifier, tmp_path):
        board = await _make_board(store, notifier)
        config_store = StageConfigStore(tmp_path / "config.json")
        stages = [
            StageDefinition(id="qualification", title="Qualified"),
            StageDefinition(id="lead", title="Lead"),
        ]

        board.update_stages(stages, config_store=config_store, key="pipeline")

        assert [c.stage.id for c in board.columns()] == ["qualification", "lead"]
        assert config_store.load("pipeline") == stages

    async def test_removed_stage_deals_fall_back_to_first_stage(self, store, notifier):
        board = await _make_board(store, notifier)
        board.update_stages([StageDefinition(id="lead", title="Lead")])
        assert _ids(board, "lead") == ["A", "C", "B"]


class TestFromSettings:
    async def test_builds_board_from_settings(self, store, tmp_path):
        settings = Settings(PIPELINE_CONFIG_PATH=str(tmp_path / "config.json"))
        with patch(
            "src.salesboard.pipeline.board.build_deal_store",
            new=AsyncMock(return_value=store),
        ):
            board = await PipelineBoard.from_settings("company-1", settings=settings)

        assert board.stages == list(DEFAULT_STAGES)
        assert board.reconciler.stage_order == tuple(s.id for s in DEFAULT_STAGES)


class TestFallbackColumns:
    async def test_fallback_deal_shown_but_not_totalled(self, store, notifier):
        store.list_deals.return_value = [
            _make_deal("A", "lead", 0),
            _make_deal("X", "closed_lost", 0, value=Decimal("9000")),
        ]
        board = PipelineBoard(store, DEFAULT_STAGES, company_id="company-1", notifier=notifier)
        await board.refresh()

        lead = board.columns()[0]

        assert [d.id for d in lead.deals] == ["A", "X"]
        assert lead.totals.count == 1
        assert lead.totals.value == Decimal("1000")

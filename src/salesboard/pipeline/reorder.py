"""Pure ordering functions for the stage-grouped deal working set.

Nothing here touches state or I/O: every function takes deals (immutable
records) plus the configured stage order and returns new values.

Ordering model: a working set is a flat sequence of deals, grouped by stage
in configured stage order, followed by any groups whose stage is not
configured (first-seen order). Inside a group the sequence order is the
display order. Moves renumber every group to contiguous 0-based positions
instead of inserting fractional positions.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from decimal import Decimal

import structlog
from pydantic import BaseModel

from src.salesboard.deals.schemas import Deal, DealPositionUpdate

logger = structlog.get_logger(__name__)


class StageTotals(BaseModel):
    """Deal count and summed value for one stage column."""

    count: int = 0
    value: Decimal = Decimal("0")


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def group_by_stage(
    deals: Iterable[Deal], stage_order: Sequence[str]
) -> dict[str, list[Deal]]:
    """Group deals by stage, preserving sequence order within each group.

    Every configured stage gets a (possibly empty) group, in configured
    order; stages that are not configured follow in first-seen order.
    """
    groups: dict[str, list[Deal]] = {stage_id: [] for stage_id in stage_order}
    for deal in deals:
        groups.setdefault(deal.stage, []).append(deal)
    return groups


def flatten(groups: dict[str, list[Deal]]) -> list[Deal]:
    return [deal for group in groups.values() for deal in group]


def renumber(group: list[Deal]) -> list[Deal]:
    """Set each deal's position to its index; unchanged deals keep identity."""
    return [
        deal if deal.position == index else deal.model_copy(update={"position": index})
        for index, deal in enumerate(group)
    ]


def fallback_stages(
    deals: Iterable[Deal], stage_order: Sequence[str]
) -> dict[str, str]:
    """Map id -> stored stage for deals whose stage is not configured.

    These deals are shown in the first configured stage, but their stored
    stage must never be overwritten unless they are moved explicitly.
    """
    if not stage_order:
        return {}
    known = set(stage_order)
    return {deal.id: deal.stage for deal in deals if deal.stage not in known}


def assign_known_stages(
    deals: Iterable[Deal], stage_order: Sequence[str]
) -> list[Deal]:
    """Reassign deals whose stage is not configured to the first configured stage."""
    if not stage_order:
        return list(deals)
    known = set(stage_order)
    fallback = stage_order[0]
    result: list[Deal] = []
    for deal in deals:
        if deal.stage in known:
            result.append(deal)
            continue
        logger.debug(
            "reorder.unknown_stage_fallback",
            deal_id=deal.id,
            stage=deal.stage,
            fallback=fallback,
        )
        result.append(deal.model_copy(update={"stage": fallback}))
    return result


def order_snapshot(deals: Iterable[Deal], stage_order: Sequence[str]) -> list[Deal]:
    """Order freshly loaded deals: unknown stages fall back, groups sort by position.

    Positions are kept as loaded; sorting is stable so equal positions keep
    their fetch order.
    """
    groups = group_by_stage(assign_known_stages(deals, stage_order), stage_order)
    for stage_id, group in groups.items():
        groups[stage_id] = sorted(group, key=lambda deal: deal.position)
    return flatten(groups)


def locate(deals: Sequence[Deal], deal_id: str) -> tuple[str, int] | None:
    """Return (stage, index within its stage group) for a deal, or None."""
    counts: dict[str, int] = {}
    for deal in deals:
        index = counts.get(deal.stage, 0)
        if deal.id == deal_id:
            return deal.stage, index
        counts[deal.stage] = index + 1
    return None


def is_noop_move(
    deals: Sequence[Deal], dragged_id: str, target_stage: str, target_position: int
) -> bool:
    """True if the move leaves the dragged deal at its current stage and index.

    Unknown deal ids are treated as no-ops.
    """
    location = locate(deals, dragged_id)
    if location is None:
        return True
    stage, index = location
    if stage != target_stage:
        return False
    group_size = sum(1 for deal in deals if deal.stage == stage)
    return clamp(target_position, 0, group_size - 1) == index


def compute_reorder(
    deals: Sequence[Deal],
    dragged_id: str,
    target_stage: str,
    target_position: int,
    stage_order: Sequence[str],
) -> list[Deal]:
    """Move one deal to ``target_stage`` at ``target_position`` and renumber.

    Steps: remove the dragged deal, reassign its stage, regroup the rest,
    insert at ``clamp(target_position, 0, len(group))``, renumber every group
    0..n-1, then concatenate configured groups in configured order followed
    by unconfigured groups.

    Returns an unmodified copy of ``deals`` if ``dragged_id`` is not present.
    """
    dragged = next((deal for deal in deals if deal.id == dragged_id), None)
    if dragged is None:
        return list(deals)

    remaining = [deal for deal in deals if deal.id != dragged_id]
    moved = (
        dragged
        if dragged.stage == target_stage
        else dragged.model_copy(update={"stage": target_stage})
    )

    groups = group_by_stage(remaining, stage_order)
    target_group = groups.setdefault(target_stage, [])
    target_group.insert(clamp(target_position, 0, len(target_group)), moved)

    return flatten({stage_id: renumber(group) for stage_id, group in groups.items()})


def position_changes(
    before: Sequence[Deal],
    after: Sequence[Deal],
    moved_id: str,
    skip: Collection[str] = (),
) -> list[DealPositionUpdate]:
    """Writes needed to persist ``after``: the moved deal first, then siblings.

    The moved deal is always written (if present in ``after``). Siblings are
    included only when their stage or position differs from ``before`` and
    their id is not in ``skip`` (deals placed by the unknown-stage fallback).
    """
    previous = {deal.id: deal for deal in before}
    moved: list[DealPositionUpdate] = []
    siblings: list[DealPositionUpdate] = []
    for deal in after:
        update = DealPositionUpdate(deal_id=deal.id, stage=deal.stage, position=deal.position)
        if deal.id == moved_id:
            moved.append(update)
            continue
        if deal.id in skip:
            continue
        old = previous.get(deal.id)
        if old is not None and old.stage == deal.stage and old.position == deal.position:
            continue
        siblings.append(update)
    return moved + siblings


def stage_totals(
    deals: Iterable[Deal],
    stage_order: Sequence[str],
    exclude: Collection[str] = (),
) -> dict[str, StageTotals]:
    """Count and summed value per configured stage.

    Deals in unconfigured stages, and ids in ``exclude``, are not counted.
    """
    totals = {stage_id: StageTotals() for stage_id in stage_order}
    for deal in deals:
        if deal.id in exclude:
            continue
        entry = totals.get(deal.stage)
        if entry is None:
            continue
        entry.count += 1
        entry.value += deal.value
    return totals


def pipeline_total(deals: Iterable[Deal]) -> Decimal:
    return sum((deal.value for deal in deals), Decimal("0"))

"""Pipeline stage configuration -- definitions, defaults and the versioned schema.

Stages are user-configurable (add, remove, reorder, rename) and persisted as
a JSON blob in a local key-value store. The blob is versioned:

- v1 (legacy): a bare JSON array of ``{id, title, iconId, colorId}``
- v2: ``{"version": 2, "stages": [{id, title, icon, color}, ...]}``

Loading reads the version, runs the migration chain up to
CURRENT_CONFIG_VERSION, validates the result and drops stage ids the remote
store does not accept. Anything unreadable falls back to DEFAULT_STAGES.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = structlog.get_logger(__name__)

CURRENT_CONFIG_VERSION = 2

ICON_KEYS: tuple[str, ...] = (
    "target",
    "users",
    "dollar",
    "trending",
    "check",
    "alert",
    "sparkles",
    "zap",
    "star",
    "x",
)
COLOR_KEYS: tuple[str, ...] = (
    "gray",
    "blue",
    "indigo",
    "purple",
    "amber",
    "emerald",
    "rose",
    "cyan",
)
DEFAULT_ICON = "target"
DEFAULT_COLOR = "gray"


class StageDefinition(BaseModel):
    """A named pipeline phase. Icon and color are opaque theme keys."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    icon: str = DEFAULT_ICON
    color: str = DEFAULT_COLOR

    @field_validator("icon")
    @classmethod
    def _known_icon(cls, value: str) -> str:
        return value if value in ICON_KEYS else DEFAULT_ICON

    @field_validator("color")
    @classmethod
    def _known_color(cls, value: str) -> str:
        return value if value in COLOR_KEYS else DEFAULT_COLOR


class StageConfig(BaseModel):
    """Current (v2) persisted shape of the pipeline configuration."""

    version: int = CURRENT_CONFIG_VERSION
    stages: list[StageDefinition]


DEFAULT_STAGES: tuple[StageDefinition, ...] = (
    StageDefinition(id="lead", title="Lead", icon="target", color="gray"),
    StageDefinition(id="qualification", title="Qualification", icon="users", color="blue"),
    StageDefinition(id="proposal", title="Proposal", icon="dollar", color="indigo"),
    StageDefinition(id="negotiation", title="Negotiation", icon="trending", color="amber"),
    StageDefinition(id="closed_won", title="Won", icon="check", color="emerald"),
)


# ── Migration chain ─────────────────────────────────────────────────────────


def _migrate_v1_to_v2(data: Any) -> dict[str, Any]:
    """Bare array with camelCase theme keys -> versioned document."""
    if not isinstance(data, list):
        raise ValueError("v1 pipeline config must be a JSON array")
    stages = []
    for item in data:
        if not isinstance(item, dict):
            raise ValueError("v1 stage entries must be objects")
        stages.append(
            {
                "id": item.get("id"),
                "title": item.get("title"),
                "icon": item.get("iconId", DEFAULT_ICON),
                "color": item.get("colorId", DEFAULT_COLOR),
            }
        )
    return {"version": 2, "stages": stages}


# version -> migration producing version + 1
MIGRATIONS: dict[int, Callable[[Any], Any]] = {
    1: _migrate_v1_to_v2,
}


def detect_version(data: Any) -> int:
    """Return the schema version of a decoded config blob (bare list -> 1)."""
    if isinstance(data, list):
        return 1
    if isinstance(data, dict) and isinstance(data.get("version"), int):
        return data["version"]
    raise ValueError("pipeline config has no readable version")


def migrate(data: Any) -> Any:
    """Run the migration chain until the data is at CURRENT_CONFIG_VERSION.

    Raises:
        ValueError: Unknown version (including versions newer than this code).
    """
    version = detect_version(data)
    if version > CURRENT_CONFIG_VERSION:
        raise ValueError(f"pipeline config version {version} is newer than supported")
    while version < CURRENT_CONFIG_VERSION:
        step = MIGRATIONS.get(version)
        if step is None:
            raise ValueError(f"no migration from pipeline config version {version}")
        data = step(data)
        version += 1
    return data


# ── Load / dump ─────────────────────────────────────────────────────────────


def filter_accepted(
    stages: Iterable[StageDefinition], accepted_ids: Iterable[str] | None
) -> list[StageDefinition]:
    """Drop duplicates and stage ids the remote store would reject."""
    accepted = set(accepted_ids) if accepted_ids is not None else None
    seen: set[str] = set()
    kept: list[StageDefinition] = []
    for stage in stages:
        if stage.id in seen:
            continue
        if accepted is not None and stage.id not in accepted:
            logger.warning("stages.unaccepted_stage_dropped", stage_id=stage.id)
            continue
        seen.add(stage.id)
        kept.append(stage)
    return kept


def load_stage_config(
    raw: str | None, accepted_ids: Iterable[str] | None = None
) -> list[StageDefinition]:
    """Decode, migrate and validate a persisted pipeline configuration.

    Args:
        raw: JSON text as stored (None or empty when nothing was saved).
        accepted_ids: Stage ids the remote store accepts; None disables the check.

    Returns:
        The configured stages, or DEFAULT_STAGES if the blob is missing,
        malformed, from an unsupported version, or leaves no valid stage.
    """
    if not raw or not raw.strip():
        return list(DEFAULT_STAGES)

    try:
        config = StageConfig.model_validate(migrate(json.loads(raw)))
    except (ValueError, ValidationError) as exc:
        # json.JSONDecodeError is a ValueError
        logger.warning("stages.invalid_config", error=str(exc))
        return list(DEFAULT_STAGES)

    stages = filter_accepted(config.stages, accepted_ids)
    if not stages:
        logger.warning("stages.no_valid_stages", fallback="defaults")
        return list(DEFAULT_STAGES)
    return stages


def dump_stage_config(stages: Iterable[StageDefinition]) -> str:
    """Serialize stages as a current-version JSON document."""
    config = StageConfig(version=CURRENT_CONFIG_VERSION, stages=list(stages))
    return config.model_dump_json()

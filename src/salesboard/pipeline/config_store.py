"""Local key-value store for the pipeline stage configuration.

A single JSON file maps opaque keys to stored config blobs (JSON text).
Reading falls back to a legacy key once and re-saves the migrated result
under the current key.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable
from pathlib import Path

import structlog

from src.salesboard.config import Settings, get_settings
from src.salesboard.pipeline.stages import (
    StageDefinition,
    dump_stage_config,
    load_stage_config,
)

logger = structlog.get_logger(__name__)


class StageConfigStore:
    """File-backed key-value store for pipeline stage configurations.

    Args:
        path: JSON file holding ``{key: blob}``; created on first save.
        accepted_ids: Stage ids the remote store accepts (None disables the check).
        legacy_key: Key read when the requested key has never been written.
    """

    def __init__(
        self,
        path: str | Path,
        accepted_ids: Iterable[str] | None = None,
        legacy_key: str | None = None,
    ) -> None:
        self._path = Path(path)
        self._accepted_ids = list(accepted_ids) if accepted_ids is not None else None
        self._legacy_key = legacy_key

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> StageConfigStore:
        settings = settings or get_settings()
        return cls(
            settings.PIPELINE_CONFIG_PATH,
            accepted_ids=settings.ACCEPTED_STAGE_IDS,
            legacy_key=settings.PIPELINE_LEGACY_CONFIG_KEY,
        )

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("config_store.unreadable", path=str(self._path), error=str(exc))
            return {}
        if not isinstance(data, dict):
            logger.warning("config_store.unexpected_layout", path=str(self._path))
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, entries: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
        os.replace(tmp_path, self._path)

    def get_raw(self, key: str) -> str | None:
        """Return the stored blob for a key, or None."""
        return self._read_all().get(key)

    def load(self, key: str) -> list[StageDefinition]:
        """Load stages for a key (legacy fallback, migration, defaults)."""
        entries = self._read_all()
        raw = entries.get(key)
        if raw is None and self._legacy_key and self._legacy_key in entries:
            stages = load_stage_config(entries[self._legacy_key], self._accepted_ids)
            self.save(key, stages)
            logger.info("config_store.legacy_config_migrated", key=key, legacy_key=self._legacy_key)
            return stages
        return load_stage_config(raw, self._accepted_ids)

    def save(self, key: str, stages: Iterable[StageDefinition]) -> None:
        """Persist stages under a key as a current-version document."""
        entries = self._read_all()
        entries[key] = dump_stage_config(stages)
        self._write_all(entries)
        logger.debug("config_store.saved", key=key)

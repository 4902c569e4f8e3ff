"""Unit tests for stage definitions and the versioned pipeline configuration.

Tests the migration chain, invalid-content fallback, theme key validation,
accepted-id filtering, and the file-backed StageConfigStore (tmp_path only).
"""

from __future__ import annotations

import json

import pytest

from src.salesboard.pipeline.config_store import StageConfigStore
from src.salesboard.pipeline.stages import (
    CURRENT_CONFIG_VERSION,
    DEFAULT_COLOR,
    DEFAULT_ICON,
    DEFAULT_STAGES,
    StageDefinition,
    detect_version,
    dump_stage_config,
    filter_accepted,
    load_stage_config,
    migrate,
)

ACCEPTED = ["lead", "qualification", "proposal", "negotiation", "closed_won", "closed_lost"]

V1_BLOB = json.dumps(
    [
        {"id": "lead", "title": "New", "iconId": "star", "colorId": "blue"},
        {"id": "proposal", "title": "Quote sent", "iconId": "dollar", "colorId": "indigo"},
    ]
)


# ── StageDefinition ────────────────────────────────────────────────────────


class TestStageDefinition:
    def test_unknown_theme_keys_fall_back(self):
        stage = StageDefinition(id="lead", title="Lead", icon="rocket", color="chartreuse")
        assert stage.icon == DEFAULT_ICON
        assert stage.color == DEFAULT_COLOR

    def test_default_stages(self):
        assert [s.id for s in DEFAULT_STAGES] == [
            "lead",
            "qualification",
            "proposal",
            "negotiation",
            "closed_won",
        ]


# ── Migration chain ────────────────────────────────────────────────────────


class TestMigration:
    def test_bare_array_is_version_1(self):
        assert detect_version([]) == 1
        assert detect_version({"version": 2, "stages": []}) == 2

    def test_unversioned_object_is_rejected(self):
        with pytest.raises(ValueError):
            detect_version({"stages": []})

    def test_v1_migrates_to_current(self):
        migrated = migrate(json.loads(V1_BLOB))
        assert migrated["version"] == CURRENT_CONFIG_VERSION
        assert migrated["stages"][0] == {
            "id": "lead",
            "title": "New",
            "icon": "star",
            "color": "blue",
        }

    def test_newer_version_is_rejected(self):
        with pytest.raises(ValueError, match="newer"):
            migrate({"version": CURRENT_CONFIG_VERSION + 1, "stages": []})

    def test_version_without_migration_is_rejected(self):
        with pytest.raises(ValueError, match="no migration"):
            migrate({"version": 0, "stages": []})


# ── load / dump ────────────────────────────────────────────────────────────


class TestLoadStageConfig:
    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing_config_uses_defaults(self, raw):
        assert load_stage_config(raw) == list(DEFAULT_STAGES)

    @pytest.mark.parametrize(
        "raw",
        [
            "{not json",
            '"just a string"',
            '{"version": 2, "stages": "nope"}',
            '{"version": 2, "stages": [{"id": "", "title": "x"}]}',
            '{"version": 99, "stages": []}',
            "[1, 2, 3]",
        ],
    )
    def test_invalid_config_uses_defaults(self, raw):
        assert load_stage_config(raw, ACCEPTED) == list(DEFAULT_STAGES)

    def test_legacy_config_is_loaded(self):
        stages = load_stage_config(V1_BLOB, ACCEPTED)
        assert [(s.id, s.title, s.icon) for s in stages] == [
            ("lead", "New", "star"),
            ("proposal", "Quote sent", "dollar"),
        ]

    def test_unaccepted_stage_ids_are_dropped(self):
        raw = dump_stage_config(
            [
                StageDefinition(id="lead", title="Lead"),
                StageDefinition(id="demo_scheduled", title="Demo"),
            ]
        )
        stages = load_stage_config(raw, ACCEPTED)
        assert [s.id for s in stages] == ["lead"]

    def test_all_stages_unaccepted_falls_back_to_defaults(self):
        raw = dump_stage_config([StageDefinition(id="custom", title="Custom")])
        assert load_stage_config(raw, ACCEPTED) == list(DEFAULT_STAGES)

    def test_no_accepted_ids_keeps_custom_stages(self):
        raw = dump_stage_config([StageDefinition(id="custom", title="Custom")])
        assert [s.id for s in load_stage_config(raw)] == ["custom"]

    def test_reordered_and_renamed_config_round_trips(self):
        stages = [
            StageDefinition(id="proposal", title="Quote", icon="dollar", color="cyan"),
            StageDefinition(id="lead", title="Inbound", icon="users", color="rose"),
        ]
        assert load_stage_config(dump_stage_config(stages), ACCEPTED) == stages

    def test_dump_is_current_version(self):
        data = json.loads(dump_stage_config(DEFAULT_STAGES))
        assert data["version"] == CURRENT_CONFIG_VERSION
        assert len(data["stages"]) == len(DEFAULT_STAGES)

    def test_filter_accepted_drops_duplicates(self):
        stages = [
            StageDefinition(id="lead", title="One"),
            StageDefinition(id="lead", title="Two"),
        ]
        assert [s.title for s in filter_accepted(stages, None)] == ["One"]


# ── StageConfigStore ───────────────────────────────────────────────────────


class TestStageConfigStore:
    def test_load_without_file_returns_defaults(self, tmp_path):
        store = StageConfigStore(tmp_path / "config.json", accepted_ids=ACCEPTED)
        assert store.load("pipeline") == list(DEFAULT_STAGES)

    def test_save_then_load(self, tmp_path):
        store = StageConfigStore(tmp_path / "nested" / "config.json", accepted_ids=ACCEPTED)
        stages = [StageDefinition(id="negotiation", title="Talks")]

        store.save("pipeline", stages)

        assert store.load("pipeline") == stages
        assert json.loads(store.get_raw("pipeline"))["version"] == CURRENT_CONFIG_VERSION

    def test_save_keeps_other_keys(self, tmp_path):
        store = StageConfigStore(tmp_path / "config.json")
        store.save("a", [StageDefinition(id="lead", title="A")])
        store.save("b", [StageDefinition(id="lead", title="B")])
        assert store.load("a")[0].title == "A"
        assert store.load("b")[0].title == "B"

    def test_legacy_key_is_migrated_and_resaved(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"legacy": V1_BLOB}), encoding="utf-8")
        store = StageConfigStore(path, accepted_ids=ACCEPTED, legacy_key="legacy")

        stages = store.load("pipeline")

        assert [s.id for s in stages] == ["lead", "proposal"]
        saved = json.loads(store.get_raw("pipeline"))
        assert saved["version"] == CURRENT_CONFIG_VERSION
        assert saved["stages"][0]["icon"] == "star"

    def test_current_key_wins_over_legacy(self, tmp_path):
        path = tmp_path / "config.json"
        current = dump_stage_config([StageDefinition(id="closed_won", title="Won")])
        path.write_text(json.dumps({"legacy": V1_BLOB, "pipeline": current}), encoding="utf-8")
        store = StageConfigStore(path, accepted_ids=ACCEPTED, legacy_key="legacy")

        assert [s.id for s in store.load("pipeline")] == ["closed_won"]

    def test_unreadable_file_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("not json at all", encoding="utf-8")
        store = StageConfigStore(path)
        assert store.load("pipeline") == list(DEFAULT_STAGES)

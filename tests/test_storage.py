"""Tests for persisting the last applied transforms."""

from __future__ import annotations

import json
import time

import pytest

from packages.alignment.storage import (
    LAST_AUTO_ALIGNMENT_KEY,
    LAST_MANUAL_ALIGNMENT_KEY,
    AlignmentStorage,
    transform_from_config,
)
from packages.core.types import AlignmentConfig, AlignmentTransform, Vec3


@pytest.fixture()
def storage(tmp_path) -> AlignmentStorage:
    return AlignmentStorage(tmp_path / "store")


@pytest.fixture()
def transform() -> AlignmentTransform:
    return AlignmentTransform(
        position=Vec3(x=1.0, y=0.0, z=-2.0),
        rotation=Vec3(x=0.0, y=1.57, z=0.0),
        scale=1.1,
    )


class TestManualAlignment:
    def test_empty_store(self, storage):
        assert storage.load_last_manual_alignment() is None

    def test_save_and_load(self, storage, transform):
        before = time.time() * 1000
        saved = storage.save_last_manual_alignment(transform, "house")
        assert saved.success

        loaded = storage.load_last_manual_alignment()
        assert loaded.transformation == transform
        assert loaded.model_id == "house"
        assert loaded.updated_at >= before

    def test_camel_case_on_disk(self, storage, transform):
        storage.save_last_manual_alignment(transform, "house")
        raw = json.loads((storage.root / f"{LAST_MANUAL_ALIGNMENT_KEY}.json").read_text())
        assert raw["modelId"] == "house"
        assert "updatedAt" in raw
        assert raw["transformation"]["scale"] == 1.1

    def test_clear(self, storage, transform):
        storage.save_last_manual_alignment(transform)
        storage.clear_last_manual_alignment()
        assert storage.load_last_manual_alignment() is None
        storage.clear_last_manual_alignment()

    def test_corrupt_file_reads_as_missing(self, storage):
        storage.root.mkdir(parents=True)
        (storage.root / f"{LAST_MANUAL_ALIGNMENT_KEY}.json").write_text("{not json")
        assert storage.load_last_manual_alignment() is None


class TestAutoAlignment:
    def test_save_and_load(self, storage, transform):
        storage.save_last_auto_alignment(
            transform, "house", source_model_id="house", target_model_id="scan"
        )
        loaded = storage.load_last_auto_alignment()
        assert loaded.source_model_id == "house"
        assert loaded.target_model_id == "scan"

        raw = json.loads((storage.root / f"{LAST_AUTO_ALIGNMENT_KEY}.json").read_text())
        assert raw["sourceModelId"] == "house"
        assert raw["targetModelId"] == "scan"

    def test_keys_are_independent(self, storage, transform):
        storage.save_last_auto_alignment(transform)
        assert storage.load_last_manual_alignment() is None
        storage.clear_last_auto_alignment()
        assert storage.load_last_auto_alignment() is None


def test_transform_from_config():
    config = AlignmentConfig(
        scale=2.0,
        position=Vec3(x=1.0, y=2.0, z=3.0),
        rotation=Vec3(x=0.0, y=0.5, z=0.0),
        confidence=0.8,
    )
    out = transform_from_config(config)
    assert out.scale == 2.0
    assert out.position == config.position
    assert out.rotation == config.rotation

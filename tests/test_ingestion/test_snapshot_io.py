"""
Tests for crm_analytics.ingestion.snapshot: snapshot file read/write.

Covers:
  - build_snapshot_path(): deterministic, correctly structured paths
  - load_snapshot(): bare and enveloped layouts
  - write_snapshot(): envelope structure, returned hash, write → load roundtrip
  - SnapshotLoadError for every unreadable-file case (missing, directory,
    non-UTF-8, bad JSON, wrong top-level type, failed validation)
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from crm_analytics.errors import SnapshotLoadError
from crm_analytics.ingestion.snapshot import build_snapshot_path, load_snapshot, write_snapshot
from crm_analytics.models.snapshot import BusinessDataSnapshot

_FIXED_DT = datetime(2026, 2, 24, 15, 0, 0, tzinfo=timezone.utc)


# ── build_snapshot_path ────────────────────────────────────────────────────────

class TestBuildSnapshotPath:
    def test_structure(self):
        path = build_snapshot_path("data/snapshots", "crm-export", _FIXED_DT)
        assert path.parts[-5:] == ("crm-export", "2026", "02", "24", "crm-export_20260224T150000Z.json")

    def test_deterministic(self):
        assert build_snapshot_path("d", "s", _FIXED_DT) == build_snapshot_path("d", "s", _FIXED_DT)


# ── load_snapshot ──────────────────────────────────────────────────────────────

class TestLoadSnapshot:
    def test_bare_object(self, snapshot_file, sample_snapshot):
        loaded = load_snapshot(snapshot_file)
        assert loaded == sample_snapshot

    def test_envelope(self, tmp_path, sample_snapshot_data, sample_snapshot):
        path = tmp_path / "env.json"
        path.write_text(
            json.dumps({"_meta": {"source": "crm-export"}, "data": sample_snapshot_data}),
            encoding="utf-8",
        )
        assert load_snapshot(path).content_hash() == sample_snapshot.content_hash()

    def test_empty_object_is_valid(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("{}", encoding="utf-8")
        assert load_snapshot(path) == BusinessDataSnapshot()

    def test_missing_file(self, tmp_path):
        path = tmp_path / "missing.json"
        with pytest.raises(SnapshotLoadError, match="file not found") as exc_info:
            load_snapshot(path)
        assert exc_info.value.path == path

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(SnapshotLoadError, match="invalid JSON"):
            load_snapshot(path)

    def test_top_level_list(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(SnapshotLoadError, match="expected a JSON object, got list"):
            load_snapshot(path)

    def test_validation_error(self, tmp_path):
        path = tmp_path / "invalid.json"
        path.write_text(json.dumps({"customers": [{"id": "c1", "riskScore": 500}]}), encoding="utf-8")
        with pytest.raises(SnapshotLoadError, match="validation error"):
            load_snapshot(path)

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "latin.json"
        path.write_bytes(b'{"revenue": "\xff\xfe"}')
        with pytest.raises(SnapshotLoadError, match="not valid UTF-8"):
            load_snapshot(path)

    def test_directory_path(self, tmp_path):
        with pytest.raises(SnapshotLoadError, match="Cannot load snapshot") as exc_info:
            load_snapshot(tmp_path)
        assert exc_info.value.path == tmp_path


# ── write_snapshot ─────────────────────────────────────────────────────────────

class TestWriteSnapshot:
    def test_envelope_written(self, tmp_path, sample_snapshot):
        path = tmp_path / "nested" / "dir" / "snap.json"
        content_hash = write_snapshot(sample_snapshot, path, source="crm-export")

        envelope = json.loads(path.read_text(encoding="utf-8"))
        assert set(envelope) == {"_meta", "data"}
        assert envelope["_meta"]["source"] == "crm-export"
        assert envelope["_meta"]["content_hash"] == content_hash
        assert envelope["_meta"]["written_at"].endswith("Z")
        assert "lifetimeValue" in envelope["data"]["customers"][0]

    def test_roundtrip(self, tmp_path, sample_snapshot):
        path = tmp_path / "snap.json"
        content_hash = write_snapshot(sample_snapshot, path)
        loaded = load_snapshot(path)
        assert loaded == sample_snapshot
        assert loaded.content_hash() == content_hash

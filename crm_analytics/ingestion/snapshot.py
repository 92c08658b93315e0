"""
Snapshot files: read and write ``BusinessDataSnapshot`` JSON on disk.

Two layouts are accepted on read:

  - the bare snapshot object::

        {"asOf": "2024-06-30", "revenue": [...], "customers": [...]}

  - an envelope, as written by ``write_snapshot``::

        {
          "_meta": {
            "source": "crm-export",
            "written_at": "2026-02-24T15:00:00Z",
            "content_hash": "3f9a..."
          },
          "data": { ...snapshot... }
        }

``content_hash`` is ``BusinessDataSnapshot.content_hash()``, so the same data
always gets the same hash regardless of key order in the source file.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from crm_analytics.errors import SnapshotLoadError
from crm_analytics.models.snapshot import BusinessDataSnapshot

logger = logging.getLogger(__name__)


def build_snapshot_path(snapshot_dir: str, source: str, written_at: datetime) -> Path:
    """Deterministic path ``{snapshot_dir}/{source}/YYYY/MM/DD/{source}_{ts}.json``.

    Example::

        build_snapshot_path("data/snapshots", "crm-export",
                            datetime(2026, 2, 24, 15, 0, 0, tzinfo=timezone.utc))
        # → Path("data/snapshots/crm-export/2026/02/24/crm-export_20260224T150000Z.json")
    """
    ts = written_at.strftime("%Y%m%dT%H%M%SZ")
    return Path(snapshot_dir) / source / written_at.strftime("%Y/%m/%d") / f"{source}_{ts}.json"


def load_snapshot(path: Path) -> BusinessDataSnapshot:
    """Load and validate a snapshot file.

    Args:
        path: JSON file, bare or enveloped.

    Returns:
        Validated ``BusinessDataSnapshot``.

    Raises:
        SnapshotLoadError: If the file is missing or unreadable, is not
            UTF-8 JSON, is not a JSON object, or fails validation.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            raw: Any = json.load(f)
    except FileNotFoundError as exc:
        raise SnapshotLoadError(path, "file not found") from exc
    except json.JSONDecodeError as exc:
        raise SnapshotLoadError(path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc
    except UnicodeDecodeError as exc:
        raise SnapshotLoadError(path, f"not valid UTF-8 ({exc.reason} at byte {exc.start})") from exc
    except OSError as exc:
        raise SnapshotLoadError(path, exc.strerror or type(exc).__name__) from exc

    if isinstance(raw, dict) and "data" in raw and "_meta" in raw:
        meta = raw["_meta"] if isinstance(raw["_meta"], dict) else {}
        raw = raw["data"]
        logger.debug(
            "Snapshot envelope: source=%s written_at=%s",
            meta.get("source", "?"), meta.get("written_at", "?"),
        )

    if not isinstance(raw, dict):
        raise SnapshotLoadError(path, f"expected a JSON object, got {type(raw).__name__}")

    try:
        snapshot = BusinessDataSnapshot.model_validate(raw)
    except ValidationError as exc:
        raise SnapshotLoadError(
            path, f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}"
        ) from exc

    logger.info("Loaded snapshot %s (hash=%s…)", path.name, snapshot.content_hash()[:12])
    return snapshot


def write_snapshot(
    snapshot: BusinessDataSnapshot,
    path: Path,
    source: str = "crm-analytics",
) -> str:
    """Write ``snapshot`` to ``path`` inside a ``_meta`` envelope.

    Parent directories are created. Records are written with their camelCase
    aliases, the same shape the loader accepts.

    Returns:
        The snapshot's content hash.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    content_hash = snapshot.content_hash()
    envelope = {
        "_meta": {
            "source": source,
            "written_at": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "content_hash": content_hash,
        },
        "data": snapshot.model_dump(mode="json", by_alias=True, exclude_none=True),
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(envelope, f, indent=2)

    logger.debug("Snapshot written: %s | hash=%s…", path.name, content_hash[:12])
    return content_hash

"""Snapshot files -- point-in-time copies of a KV store on disk.

A snapshot is an indented JSON array, in the order the store listed
its keys:

    [
      {
        "key": "serviceA/db/host",
        "value": "10.0.0.4"
      }
    ]

Values are the raw bytes decoded as UTF-8. Bytes that are not valid
UTF-8 are kept with ``surrogateescape`` and written as ``\\udcXX``
escapes, so any value reads back byte-for-byte.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

from .models import Record

logger = logging.getLogger("consulsync.snapshot")

BACKUP_PREFIX = "local_backup_"
BACKUP_TIMESTAMP_FORMAT = "%Y-%m-%d_%H%M%S"


class SnapshotError(Exception):
    """A snapshot file could not be read, parsed, or written."""


def _encode_value(value: bytes) -> str:
    return value.decode("utf-8", errors="surrogateescape")


def _decode_value(value: str) -> bytes:
    return value.encode("utf-8", errors="surrogateescape")


def backup_filename(now: Optional[datetime] = None) -> str:
    """Name of a timestamped local backup, e.g. ``local_backup_2026-02-24_130501.json``."""
    stamp = (now or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
    return f"{BACKUP_PREFIX}{stamp}.json"


def write_snapshot(records: Iterable[Record], path: Path) -> int:
    """Write records to ``path`` as a snapshot.

    Args:
        records: Records in listing order.
        path: Destination file. Parent directories are created.

    Returns:
        int: Number of records written.

    Raises:
        SnapshotError: If the file cannot be written.
    """
    entries = [{"key": r.key, "value": _encode_value(r.value)} for r in records]
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
    except OSError as exc:
        raise SnapshotError(f"Failed to write {path}: {exc}") from exc

    logger.info("Snapshot written: %s (%d keys)", path, len(entries))
    return len(entries)


def read_snapshot(path: Path) -> list[Record]:
    """Load every record from a snapshot file.

    Raises:
        SnapshotError: If the file is missing, unreadable, or malformed.
    """
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SnapshotError(f"Failed to read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Failed to parse {path}: {exc}") from exc

    if not isinstance(data, list):
        raise SnapshotError(f"Failed to parse {path}: expected a JSON array")

    records = []
    for i, entry in enumerate(data):
        if not isinstance(entry, dict) or not isinstance(entry.get("key"), str):
            raise SnapshotError(f"Failed to parse {path}: entry {i} has no string 'key'")
        value = entry.get("value", "")
        if not isinstance(value, str):
            raise SnapshotError(f"Failed to parse {path}: entry {i} 'value' is not a string")
        try:
            raw = _decode_value(value)
        except UnicodeEncodeError as exc:
            raise SnapshotError(f"Failed to parse {path}: entry {i} value: {exc}") from exc
        records.append(Record(key=entry["key"], value=raw))

    logger.debug("Snapshot loaded: %s (%d keys)", path, len(records))
    return records


def list_snapshots(directory: Path) -> list[dict[str, Any]]:
    """List local backups in a directory, newest first.

    Args:
        directory: Directory holding ``local_backup_*.json`` files.

    Returns:
        list[dict]: Entries with 'filename', 'path', 'size', 'created'.
    """
    if not directory.exists():
        return []

    snapshots = []
    for f in directory.glob(f"{BACKUP_PREFIX}*.json"):
        stamp = f.stem[len(BACKUP_PREFIX):]
        try:
            created = datetime.strptime(stamp, BACKUP_TIMESTAMP_FORMAT)
        except ValueError:
            continue
        snapshots.append({
            "filename": f.name,
            "path": str(f),
            "size": f.stat().st_size,
            "created": created.isoformat(),
        })

    snapshots.sort(key=lambda s: s["created"], reverse=True)
    return snapshots

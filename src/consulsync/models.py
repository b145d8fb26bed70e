"""
Sync data models -- records, rewrite decisions, configuration, reports.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from . import DEFAULT_EXPORT_FILE

LOCAL_DEFAULT_ADDR = "http://localhost:8500"
STAGING_DEFAULT_ADDR = "http://staging-consul:8500"


class Record(BaseModel):
    """A single key/value pair read from a store or a snapshot.

    Values are opaque bytes and are never parsed.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    value: bytes = b""


class Selected(BaseModel):
    """Record is in scope and will be written to ``destination_key``."""

    model_config = ConfigDict(frozen=True)

    source_key: str
    destination_key: str


class Skipped(BaseModel):
    """Record was deliberately not written."""

    model_config = ConfigDict(frozen=True)

    source_key: str
    reason: str


RewriteDecision = Union[Selected, Skipped]


class OutcomeKind(str, Enum):
    """What happened to a single record during an operation."""

    IMPORTED = "imported"
    PLANNED = "planned"
    SKIPPED = "skipped"
    FAILED = "failed"
    MISSING = "missing"


class RecordOutcome(BaseModel):
    """Per-record result of a backup, export, or import.

    Attributes:
        index: 1-based position within the batch.
        kind: Outcome category.
        source_key: Key as listed or as stored in the snapshot.
        destination_key: Rewritten key, for import outcomes.
        detail: Error text or skip reason.
    """

    index: int
    kind: OutcomeKind
    source_key: str
    destination_key: Optional[str] = None
    detail: str = ""


class SyncReport(BaseModel):
    """Summary of one top-level operation."""

    operation: str
    store: str
    snapshot_path: Optional[Path] = None
    record_count: int = 0
    outcomes: list[RecordOutcome] = Field(default_factory=list)

    def count(self, kind: OutcomeKind) -> int:
        return sum(1 for o in self.outcomes if o.kind == kind)

    @property
    def selected(self) -> int:
        """Records that passed selection and rewrite."""
        return sum(
            1 for o in self.outcomes
            if o.destination_key is not None and o.kind != OutcomeKind.SKIPPED
        )

    @property
    def imported(self) -> int:
        return self.count(OutcomeKind.IMPORTED)

    @property
    def skipped(self) -> int:
        return self.count(OutcomeKind.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(OutcomeKind.FAILED)

    @property
    def missing(self) -> int:
        return self.count(OutcomeKind.MISSING)


class StoreConfig(BaseModel):
    """Address and credentials of one Consul cluster."""

    name: str
    address: str
    token: Optional[str] = None


class SyncConfig(BaseModel):
    """Complete configuration, built once at process start."""

    local: StoreConfig = Field(
        default_factory=lambda: StoreConfig(name="local", address=LOCAL_DEFAULT_ADDR)
    )
    staging: StoreConfig = Field(
        default_factory=lambda: StoreConfig(name="staging", address=STAGING_DEFAULT_ADDR)
    )
    export_file: str = DEFAULT_EXPORT_FILE
    backup_dir: Path = Path(".")
    timeout_seconds: float = Field(default=10.0, gt=0)

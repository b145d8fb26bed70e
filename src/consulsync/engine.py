"""
Sync Engine -- orchestrates snapshots and prefix-rewritten imports.

    consul-sync --backup   ->  list local keys -> get each -> local_backup_<ts>.json
    consul-sync --export   ->  list staging keys -> get each -> consul_export.json
    consul-sync --import   ->  backup local -> read export -> rewrite -> put each

Setup failures (no backend, no key listing, unreadable snapshot) raise
SyncFatalError. Anything that goes wrong for a single key becomes a
RecordOutcome and the batch moves on.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from .backends import BackendError, KVBackend, create_backend
from .models import (
    OutcomeKind,
    Record,
    RecordOutcome,
    Selected,
    StoreConfig,
    SyncConfig,
    SyncReport,
)
from .rewrite import plan_import
from .snapshot import SnapshotError, backup_filename, read_snapshot, write_snapshot

logger = logging.getLogger("consulsync.engine")

BackendFactory = Callable[[StoreConfig, float], KVBackend]


class SyncFatalError(Exception):
    """An operation could not start or could not finish at all."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class SyncEngine:
    """Runs backup, export, and import against two Consul clusters.

    The engine holds no state between operations; each call lists,
    reads, and writes from scratch.
    """

    def __init__(
        self,
        config: SyncConfig,
        backend_factory: BackendFactory = create_backend,
        workdir: Optional[Path] = None,
    ):
        """Initialize the sync engine.

        Args:
            config: Store addresses, tokens, and file locations.
            backend_factory: Builds a KVBackend for a StoreConfig.
            workdir: Base directory for relative snapshot paths. Defaults to cwd.
        """
        self.config = config
        self.backend_factory = backend_factory
        self.workdir = workdir or Path.cwd()

    @property
    def export_path(self) -> Path:
        return self.workdir / self.config.export_file

    @property
    def backup_dir(self) -> Path:
        return self.workdir / self.config.backup_dir

    def _connect(self, operation: str, store: StoreConfig) -> KVBackend:
        try:
            return self.backend_factory(store, self.config.timeout_seconds)
        except BackendError as exc:
            raise SyncFatalError(
                operation, f"failed to create {store.name} client: {exc}"
            ) from exc

    def _snapshot(self, operation: str, store: StoreConfig, path: Path) -> SyncReport:
        """List and fetch every key of ``store`` and write them to ``path``."""
        report = SyncReport(operation=operation, store=store.name)
        records: list[Record] = []

        with self._connect(operation, store) as backend:
            try:
                keys = backend.list_keys()
            except BackendError as exc:
                raise SyncFatalError(
                    operation, f"failed to list {store.name} keys: {exc}"
                ) from exc

            for i, key in enumerate(keys, start=1):
                try:
                    value = backend.get(key)
                except BackendError as exc:
                    logger.warning("Failed to read key %s: %s", key, exc)
                    report.outcomes.append(RecordOutcome(
                        index=i, kind=OutcomeKind.FAILED,
                        source_key=key, detail=str(exc),
                    ))
                    continue

                if value is None:
                    logger.info("Key %s vanished before it could be read", key)
                    report.outcomes.append(RecordOutcome(
                        index=i, kind=OutcomeKind.MISSING,
                        source_key=key, detail="not found",
                    ))
                    continue

                records.append(Record(key=key, value=value))

        try:
            report.record_count = write_snapshot(records, path)
        except SnapshotError as exc:
            raise SyncFatalError(operation, str(exc)) from exc

        report.snapshot_path = path
        logger.info(
            "%s of %s complete: %s (%d keys, %d failed, %d missing)",
            operation, store.name, path, report.record_count,
            report.failed, report.missing,
        )
        return report

    def backup(self) -> SyncReport:
        """Snapshot the local store to a timestamped backup file."""
        path = self.backup_dir / backup_filename()
        if path.exists():
            logger.warning("Backup %s already exists and will be overwritten", path)
        return self._snapshot("backup", self.config.local, path)

    def export(self) -> SyncReport:
        """Snapshot the staging store to the fixed export file."""
        return self._snapshot("export", self.config.staging, self.export_path)

    def import_snapshot(
        self,
        from_prefix: str = "",
        to_prefix: str = "",
        dry_run: bool = False,
    ) -> list[SyncReport]:
        """Back up local, then import the export file into local.

        Args:
            from_prefix: Only import keys starting with this; it is stripped.
            to_prefix: Prepended to every imported key.
            dry_run: Plan and report without writing anything to local.

        Returns:
            list[SyncReport]: The safety backup report, then the import report.
        """
        safety = self.backup()

        store = self.config.local
        report = SyncReport(
            operation="import", store=store.name, snapshot_path=self.export_path
        )

        with self._connect("import", store) as backend:
            try:
                records = read_snapshot(self.export_path)
            except SnapshotError as exc:
                raise SyncFatalError("import", str(exc)) from exc

            plan = plan_import(records, from_prefix, to_prefix)
            report.record_count = len(plan)
            total = len(plan)
            logger.info(
                "Importing %d of %d keys (from-prefix=%r -> to-prefix=%r)%s",
                total, len(records), from_prefix, to_prefix,
                " [dry run]" if dry_run else "",
            )

            for i, (record, decision) in enumerate(plan, start=1):
                if not isinstance(decision, Selected):
                    logger.warning(
                        "Skipping key '%s': %s", decision.source_key, decision.reason
                    )
                    report.outcomes.append(RecordOutcome(
                        index=i, kind=OutcomeKind.SKIPPED,
                        source_key=decision.source_key, detail=decision.reason,
                    ))
                    continue

                dest = decision.destination_key
                if dry_run:
                    report.outcomes.append(RecordOutcome(
                        index=i, kind=OutcomeKind.PLANNED,
                        source_key=record.key, destination_key=dest,
                    ))
                    continue

                try:
                    backend.put(dest, record.value)
                except BackendError as exc:
                    logger.error(
                        "[%d/%d] Failed: %s -> %s : %s", i, total, record.key, dest, exc
                    )
                    report.outcomes.append(RecordOutcome(
                        index=i, kind=OutcomeKind.FAILED,
                        source_key=record.key, destination_key=dest, detail=str(exc),
                    ))
                    continue

                logger.debug("[%d/%d] %s -> %s", i, total, record.key, dest)
                report.outcomes.append(RecordOutcome(
                    index=i, kind=OutcomeKind.IMPORTED,
                    source_key=record.key, destination_key=dest,
                ))

        return [safety, report]

    def run(
        self,
        backup: bool = False,
        export: bool = False,
        do_import: bool = False,
        from_prefix: str = "",
        to_prefix: str = "",
        dry_run: bool = False,
    ) -> list[SyncReport]:
        """Run the requested operations in order: backup, export, import."""
        reports = []
        if backup:
            reports.append(self.backup())
        if export:
            reports.append(self.export())
        if do_import:
            reports.extend(self.import_snapshot(from_prefix, to_prefix, dry_run=dry_run))
        return reports

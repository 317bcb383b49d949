"""Cell database service composing the store, file paths and event log."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable

from utils.logging import get_logger

from . import merge, queries
from .events import EventLogger, NotificationPreferences
from .models import (
    BaseStation,
    CellObservation,
    Event,
    ImportRecord,
    LocationFix,
    Measurement,
)
from .ocid import (
    ExportResult,
    ImportResult,
    OcidPaths,
    import_ocid_csv,
    mark_submitted,
    prepare_upload_data,
)
from .store import CellStore
from .validation import CleanseSummary, cleanse_import_table

logger = get_logger('cellguard.celldb.service')


class CellDataService:
    """Entry point for everything the application does with cell data."""

    def __init__(
        self,
        db_path: str | Path,
        base_dir: str | Path,
        settle_seconds: float = 0.0,
        event_workers: int = 1,
        preferences: NotificationPreferences | None = None,
        notifier: Callable[[Event], None] | None = None,
    ):
        """
        Initialize the service.

        Args:
            db_path: SQLite database file
            base_dir: Application base data directory holding the OpenCellID files
            settle_seconds: Delay after a bulk import before completion is reported
            event_workers: Threads writing detection events
            preferences: Notification preferences for detection events
            notifier: Side effect run after a detection event is committed
        """
        self.store = CellStore(db_path, max_workers=event_workers)
        self.paths = OcidPaths(Path(base_dir))
        self.settle_seconds = settle_seconds
        self.events = EventLogger(self.store, preferences, notifier)
        self.stop_event = threading.Event()

    def start(self) -> None:
        self.store.init_schema()
        logger.info(f"Cell data service started (data dir: {self.paths.base_dir})")

    def close(self) -> None:
        self.stop_event.set()
        self.store.close()
        logger.info("Cell data service stopped")

    # Merge / dedup

    def record_observation(self, obs: CellObservation) -> merge.MergeResult:
        return self.store.run(lambda conn: merge.record_observation(conn, obs))

    def observe(self, obs: CellObservation) -> tuple[bool, merge.MergeResult]:
        """
        Check the LAC against stored base stations, then merge the observation.

        Both steps share one write transaction, so concurrent observations of
        the same CID see each other's base stations.

        Returns:
            (lac_ok, merge result)
        """
        def work(conn):
            lac_ok = merge.check_lac_change(conn, obs)
            return lac_ok, merge.record_observation(conn, obs)

        return self.store.run(work)

    def check_lac_change(self, obs: CellObservation) -> bool:
        return self.store.read(lambda conn: merge.check_lac_change(conn, obs))

    def merge_import_record(self, record: ImportRecord) -> bool:
        return self.store.run(lambda conn: merge.merge_import_record(conn, record))

    def open_cell_exists(self, cell_id: int) -> bool:
        return self.store.read(lambda conn: merge.open_cell_exists(conn, cell_id))

    def cell_in_bts(self, lac: int, cell_id: int) -> bool:
        return self.store.read(lambda conn: merge.cell_in_bts(conn, lac, cell_id))

    def cell_in_measure(self, cell_id: int) -> bool:
        return self.store.read(lambda conn: merge.cell_in_measure(conn, cell_id))

    # Validation

    def check_imports(self) -> CleanseSummary:
        """Run the import consistency check as one transaction."""
        return self.store.run(cleanse_import_table)

    # Bulk import / export

    def import_ocid(
        self,
        csv_path: str | Path | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> ImportResult:
        return import_ocid_csv(
            self.store,
            csv_path or self.paths.import_file,
            progress_callback=progress_callback,
            settle_seconds=self.settle_seconds,
            stop_event=self.stop_event,
        )

    def prepare_upload(self) -> ExportResult:
        return prepare_upload_data(self.store, self.paths.export_file)

    def upload_completed(self) -> int:
        """Submission completion signal from the uploader."""
        return mark_submitted(self.store)

    # Queries

    def average_signal_strength(self, cell_id: int) -> float:
        return self.store.read(lambda conn: queries.average_signal_strength(conn, cell_id))

    def imports_by_network(self, mcc: int, mnc: int) -> list[ImportRecord]:
        return self.store.read(lambda conn: queries.imports_by_network(conn, mcc, mnc))

    def default_location(self, mcc: int) -> LocationFix:
        return self.store.read(lambda conn: queries.default_location(conn, mcc))

    def add_default_location(self, mcc: int, lat: float, lon: float) -> int:
        return self.store.run(lambda conn: queries.add_default_location(conn, mcc, lat, lon))

    def cleanse_cell_table(self) -> int:
        return self.store.run(queries.cleanse_cell_table)

    def unsubmitted_measurements(self) -> list[Measurement]:
        return self.store.read(queries.unsubmitted_measurements)

    def measurements_for_cell(self, cell_id: int) -> list[Measurement]:
        return self.store.read(lambda conn: queries.measurements_for_cell(conn, cell_id))

    def list_base_stations(self, mcc: int | None = None, limit: int = 1000) -> list[BaseStation]:
        return self.store.read(lambda conn: queries.list_base_stations(conn, mcc, limit))

    def list_events(self, limit: int = 100) -> list[Event]:
        return self.store.read(lambda conn: queries.list_events(conn, limit))

    def stats(self) -> dict:
        return self.store.read(queries.database_stats)

    # Events

    def log_event(self, cell: CellObservation, df_id: int, df_description: str) -> Future:
        return self.events.log_event(cell, df_id, df_description)

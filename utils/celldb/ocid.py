"""
OpenCellID bulk import and upload export.

Dataset layout (header row skipped, 19 positional columns)::

    lat,lon,mcc,mnc,lac,cellid,averageSignalStrength,range,samples,
    changeable,radio,rnc,cid,psc,tac,pci,sid,nid,bid

``cellid`` is the long CID (65536 * RNC + CID); ``cid`` is the short one.
The dataset carries no first/last-seen times, and ``range`` or ``samples``
are often negative; the consistency check deals with those afterwards.

Upload layout::

    mcc,mnc,lac,cellid,lon,lat,signal,measured_at,rating
"""

from __future__ import annotations

import csv
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from utils.constants import (
    IMPORT_PROGRESS_INTERVAL,
    OCID_COLUMN_COUNT,
    OCID_DB_SOURCE,
    OCID_DIR_NAME,
    OCID_EXPORT_FILE,
    OCID_EXPORT_HEADER,
    OCID_IMPORT_FILE,
    PSC_MISSING_SENTINEL,
)
from utils.logging import get_logger

from .errors import IOFailure, ValidationFailure
from .merge import merge_import_record
from .models import ImportRecord, LocationFix
from .queries import mark_all_submitted, unsubmitted_measurements
from .store import CellStore

logger = get_logger('cellguard.celldb.ocid')


@dataclass(frozen=True)
class OcidPaths:
    """Well-known dataset and upload file locations under a base data directory."""
    base_dir: Path

    @property
    def directory(self) -> Path:
        return Path(self.base_dir) / OCID_DIR_NAME

    @property
    def import_file(self) -> Path:
        return self.directory / OCID_IMPORT_FILE

    @property
    def export_file(self) -> Path:
        return self.directory / OCID_EXPORT_FILE


@dataclass
class ImportResult:
    """Outcome of a bulk import."""
    success: bool
    status: str
    message: str = ''
    rows_read: int = 0
    rows_inserted: int = 0
    rows_duplicate: int = 0
    error_row: int | None = None
    interrupted: bool = False

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'status': self.status,
            'message': self.message,
            'rows_read': self.rows_read,
            'rows_inserted': self.rows_inserted,
            'rows_duplicate': self.rows_duplicate,
            'error_row': self.error_row,
            'interrupted': self.interrupted,
        }


@dataclass
class ExportResult:
    """Outcome of preparing the upload file."""
    success: bool
    status: str
    message: str = ''
    path: str | None = None
    rows_written: int = 0

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'status': self.status,
            'message': self.message,
            'path': self.path,
            'rows_written': self.rows_written,
        }


def _parse_int(value: str, column: str, row_number: int) -> int:
    try:
        return int(value.strip())
    except (ValueError, AttributeError) as e:
        raise ValidationFailure(
            f"Row {row_number}: invalid {column} value {value!r}", row=row_number
        ) from e


def _parse_float(value: str, column: str, row_number: int) -> float:
    try:
        return float(value.strip())
    except (ValueError, AttributeError) as e:
        raise ValidationFailure(
            f"Row {row_number}: invalid {column} value {value!r}", row=row_number
        ) from e


def parse_ocid_row(fields: list[str], row_number: int, now: datetime) -> ImportRecord:
    """
    Convert one dataset row into an import record.

    Raises:
        ValidationFailure: If the row is short or a numeric field is malformed
    """
    if len(fields) < OCID_COLUMN_COUNT:
        raise ValidationFailure(
            f"Row {row_number}: expected {OCID_COLUMN_COUNT} columns, got {len(fields)}",
            row=row_number
        )

    # Datasets without PSC keep the 666 marker already present in older imports
    psc_field = fields[13].strip()
    psc = _parse_int(psc_field, 'psc', row_number) if psc_field else PSC_MISSING_SENTINEL

    changeable = _parse_int(fields[9], 'changeable', row_number)

    return ImportRecord(
        db_source=OCID_DB_SOURCE,
        rat=fields[10].strip(),
        mcc=_parse_int(fields[2], 'mcc', row_number),
        mnc=_parse_int(fields[3], 'mnc', row_number),
        lac=_parse_int(fields[4], 'lac', row_number),
        cell_id=_parse_int(fields[5], 'cellid', row_number),
        psc=psc,
        location=LocationFix(
            _parse_float(fields[0], 'lat', row_number),
            _parse_float(fields[1], 'lon', row_number),
        ),
        is_gps_exact=changeable == 0,
        avg_signal=_parse_int(fields[6], 'averageSignalStrength', row_number),
        avg_range=_parse_int(fields[7], 'range', row_number),
        samples=_parse_int(fields[8], 'samples', row_number),
        time_first=now,
        time_last=now,
        rej_cause=0,
    )


def import_ocid_csv(
    store: CellStore,
    csv_path: str | Path,
    progress_callback: Callable[[int, int], None] | None = None,
    settle_seconds: float = 0.0,
    stop_event: threading.Event | None = None,
) -> ImportResult:
    """
    Import an OpenCellID dataset into the import set.

    Each row is merged in its own transaction, so rows committed before a
    malformed row stay committed. Duplicate (LAC, CID) rows are skipped.

    Args:
        store: Target cell store
        csv_path: Path to the dataset file
        progress_callback: Optional callback(rows_done, total_rows)
        settle_seconds: Delay before returning so a progress display can settle
        stop_event: Setting it during the settling delay ends the wait early

    Returns:
        ImportResult; IO, database and parse failures are reported, never raised
    """
    csv_file = Path(csv_path)
    result = ImportResult(success=False, status='failed')

    try:
        if not csv_file.exists():
            raise IOFailure(f"OpenCellID dataset not found: {csv_file}", path=str(csv_file))

        try:
            with open(csv_file, 'r', encoding='utf-8', newline='') as f:
                rows = list(csv.reader(f))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise IOFailure(f"Cannot read {csv_file}: {e}", path=str(csv_file)) from e

        total_rows = max(len(rows) - 1, 0)
        logger.info(f"OpenCellID dataset {csv_file}: {total_rows:,} data rows")
        now = datetime.now()

        # Row 1 is the header
        for row_number, fields in enumerate(rows[1:], start=2):
            if not any(f.strip() for f in fields):
                continue
            record = parse_ocid_row(fields, row_number, now)
            try:
                inserted = store.run(lambda conn: merge_import_record(conn, record))
            except sqlite3.Error as e:
                # Rows merged so far stay committed
                result.error_row = row_number
                raise IOFailure(
                    f"Database error at row {row_number}: {e}", path=str(store.db_path)
                ) from e
            if inserted:
                result.rows_inserted += 1
            else:
                result.rows_duplicate += 1
            result.rows_read += 1

            if progress_callback and result.rows_read % IMPORT_PROGRESS_INTERVAL == 0:
                progress_callback(result.rows_read, total_rows)

        if progress_callback:
            progress_callback(result.rows_read, total_rows)

        result.success = True
        result.status = 'imported'
        result.message = f"Imported {result.rows_inserted} cells ({result.rows_duplicate} duplicates skipped)"
        logger.info(f"OpenCellID import complete: {result.message}")

    except ValidationFailure as e:
        result.error_row = e.row
        result.message = f"Error parsing OpenCellID data: {e}"
        logger.error(result.message)
    except IOFailure as e:
        result.message = str(e)
        logger.error(result.message)
    finally:
        if settle_seconds > 0:
            stop_event = stop_event or threading.Event()
            if stop_event.wait(settle_seconds):
                result.interrupted = True
                logger.info("OpenCellID import stop requested during settling delay")

    return result


def prepare_upload_data(store: CellStore, export_path: str | Path) -> ExportResult:
    """
    Write unsubmitted measurements to the upload CSV.

    The file is only created when absent; an existing file is left as it is
    and counts as prepared.
    """
    export_file = Path(export_path)

    measurements = store.read(unsubmitted_measurements)
    if not measurements:
        logger.info("OCID upload: nothing to export")
        return ExportResult(success=False, status='nothing_to_export', message='Nothing to export')

    try:
        export_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"OCID upload: cannot create {export_file.parent}: {e}")
        return ExportResult(
            success=False, status='failed',
            message=f"Cannot create directory {export_file.parent}: {e}"
        )

    if export_file.exists():
        logger.info(f"OCID upload: {export_file} already prepared")
        return ExportResult(
            success=True, status='exists',
            message='Upload file already exists', path=str(export_file)
        )

    created = False
    try:
        # 'x' never overwrites a file created meanwhile
        with open(export_file, 'x', encoding='utf-8', newline='') as f:
            created = True
            writer = csv.writer(f)
            writer.writerow(OCID_EXPORT_HEADER)
            for measurement in measurements:
                bts = measurement.bts
                writer.writerow((
                    bts.mcc,
                    bts.mnc,
                    bts.lac,
                    bts.cell_id,
                    measurement.location.longitude,
                    measurement.location.latitude,
                    measurement.rx_signal,
                    measurement.measured_at_ms,
                    measurement.location.accuracy,
                ))
    except (OSError, csv.Error) as e:
        logger.error(f"Error creating OpenCellID upload data: {e}")
        # A partial file would later pass for a prepared upload
        if created:
            try:
                export_file.unlink(missing_ok=True)
            except OSError as unlink_error:
                logger.error(f"Cannot remove partial upload file {export_file}: {unlink_error}")
        return ExportResult(
            success=False, status='failed',
            message=f"Cannot write {export_file}: {e}"
        )

    logger.debug(f"OCID UPLOAD: row count = {len(measurements)}")
    return ExportResult(
        success=True, status='exported',
        message=f"Exported {len(measurements)} measurements",
        path=str(export_file), rows_written=len(measurements)
    )


def mark_submitted(store: CellStore) -> int:
    """Flag all measurements as submitted once the upload went through."""
    count = store.run(mark_all_submitted)
    logger.info(f"OCID upload confirmed: {count} measurements marked submitted")
    return count

"""
Merge and deduplication of cell records.

Reconciles live radio observations with the stored base stations and
measurements, and bulk-import rows with the stored import set. Every
function takes the connection of an open transaction (see
``CellStore.run``) so that the existence check and the insert commit as
one unit.
"""

from __future__ import annotations

import sqlite3
import struct
from dataclasses import dataclass
from datetime import datetime

from utils.logging import get_logger

from .models import CellObservation, ImportRecord, to_epoch_ms

logger = get_logger('cellguard.celldb.merge')


@dataclass
class MergeResult:
    """What record_observation did to the store."""
    bts_id: int
    bts_created: bool
    measurement_created: bool
    measurements_updated: int = 0

    def to_dict(self) -> dict:
        return {
            'bts_id': self.bts_id,
            'bts_created': self.bts_created,
            'measurement_created': self.measurement_created,
            'measurements_updated': self.measurements_updated,
        }


def raw_bits(value: float) -> int:
    """IEEE-754 bit pattern of a double."""
    return struct.unpack('<q', struct.pack('<d', value))[0]


def has_fix(lat: float, lon: float) -> bool:
    """
    True unless latitude or longitude is exactly 0.0.

    (0.0, 0.0) means "no fix" here, not a point on the equator.
    """
    return raw_bits(lat) != 0 and raw_bits(lon) != 0


def cell_in_bts(conn: sqlite3.Connection, lac: int, cell_id: int) -> bool:
    """Check if (LAC, CID) is already a known base station."""
    cursor = conn.execute(
        'SELECT COUNT(*) FROM base_stations WHERE lac = ? AND cell_id = ?',
        (lac, cell_id)
    )
    return cursor.fetchone()[0] > 0


def cell_in_measure(conn: sqlite3.Connection, cell_id: int) -> bool:
    """Check if any measurement references a base station with this CID."""
    cursor = conn.execute('''
        SELECT COUNT(*) FROM measurements m
        JOIN base_stations b ON m.bts_id = b.id
        WHERE b.cell_id = ?
    ''', (cell_id,))
    return cursor.fetchone()[0] > 0


def open_cell_exists(conn: sqlite3.Connection, cell_id: int) -> bool:
    """Check if a cell with this CID is present in the import set."""
    cursor = conn.execute('SELECT COUNT(*) FROM imports WHERE cell_id = ?', (cell_id,))
    return cursor.fetchone()[0] > 0


def record_observation(
    conn: sqlite3.Connection,
    obs: CellObservation,
    now: datetime | None = None
) -> MergeResult:
    """
    Insert or update the base station and measurement for an observed cell.

    A new base station takes the observation's location as-is. Existing
    rows only take location, accuracy, signal and timing advance values
    that carry information; zeros mean "not reported" and are skipped.
    """
    now_ms = to_epoch_ms(now or datetime.now())

    row = conn.execute(
        'SELECT id FROM base_stations WHERE lac = ? AND cell_id = ?',
        (obs.lac, obs.cid)
    ).fetchone()

    if row is None:
        # TODO: take the position from a GPS-exact import record once one matches
        cursor = conn.execute('''
            INSERT INTO base_stations
            (mcc, mnc, lac, cell_id, psc, lat, lon, time_first, time_last)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            obs.mcc, obs.mnc, obs.lac, obs.cid, obs.psc,
            obs.lat, obs.lon, now_ms, now_ms
        ))
        bts_id = cursor.lastrowid
        bts_created = True
        logger.info(f"BTS inserted: CID={obs.cid} LAC={obs.lac}")
    else:
        bts_id = row['id']
        bts_created = False
        conn.execute('UPDATE base_stations SET time_last = ? WHERE id = ?', (now_ms, bts_id))
        if has_fix(obs.lat, obs.lon):
            conn.execute(
                'UPDATE base_stations SET lat = ?, lon = ? WHERE id = ?',
                (obs.lat, obs.lon, bts_id)
            )
        logger.info(f"BTS updated: CID={obs.cid} LAC={obs.lac}")

    measurement_ids = [
        r['id'] for r in conn.execute('''
            SELECT m.id FROM measurements m
            JOIN base_stations b ON m.bts_id = b.id
            WHERE b.cell_id = ?
        ''', (obs.cid,))
    ]

    if not measurement_ids:
        conn.execute('''
            INSERT INTO measurements
            (bts_id, lat, lon, accuracy, time, rx_signal, rat, timing_advance, submitted, neighbour)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, 0)
        ''', (
            bts_id, obs.lat, obs.lon, obs.accuracy, now_ms,
            obs.signal, str(obs.rat), obs.timing_advance
        ))
        logger.info(f"Measure inserted: CID={obs.cid}")
        return MergeResult(bts_id=bts_id, bts_created=bts_created, measurement_created=True)

    updates = {}
    if has_fix(obs.lat, obs.lon):
        updates['lat'] = obs.lat
        updates['lon'] = obs.lon
    # Both guards kept: older clients reported accuracy as raw zero bits
    if raw_bits(obs.accuracy) != 0 and obs.accuracy > 0:
        updates['accuracy'] = obs.accuracy
    if obs.signal > 0:
        updates['rx_signal'] = obs.signal
    # 0 means "unavailable" on platforms that cannot report timing advance
    if obs.timing_advance > 0:
        updates['timing_advance'] = obs.timing_advance

    if updates:
        assignments = ', '.join(f'{column} = ?' for column in updates)
        conn.executemany(
            f'UPDATE measurements SET {assignments} WHERE id = ?',
            [(*updates.values(), measurement_id) for measurement_id in measurement_ids]
        )
    logger.info(f"Measure updated: CID={obs.cid}")

    return MergeResult(
        bts_id=bts_id,
        bts_created=bts_created,
        measurement_created=False,
        measurements_updated=len(measurement_ids) if updates else 0,
    )


def merge_import_record(conn: sqlite3.Connection, record: ImportRecord) -> bool:
    """
    Insert an import record unless one with the same (LAC, CID) exists.

    The first import of a cell wins; later duplicates are dropped.

    Returns:
        True if the record was inserted
    """
    cursor = conn.execute(
        'SELECT COUNT(*) FROM imports WHERE lac = ? AND cell_id = ?',
        (record.lac, record.cell_id)
    )
    if cursor.fetchone()[0] > 0:
        return False

    conn.execute('''
        INSERT INTO imports
        (db_source, rat, mcc, mnc, lac, cell_id, psc, lat, lon, is_gps_exact,
         avg_signal, avg_range, samples, time_first, time_last, rej_cause)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    ''', (
        record.db_source, record.rat, record.mcc, record.mnc,
        record.lac, record.cell_id, record.psc,
        record.location.latitude, record.location.longitude,
        1 if record.is_gps_exact else 0,
        record.avg_signal, record.avg_range, record.samples,
        to_epoch_ms(record.time_first), to_epoch_ms(record.time_last),
        record.rej_cause if record.rej_cause is not None else 0,
    ))
    return True


def check_lac_change(conn: sqlite3.Connection, obs: CellObservation) -> bool:
    """
    Compare the observed LAC with every stored base station sharing the CID.

    Returns:
        False if any stored LAC differs (alert), True otherwise
    """
    rows = conn.execute(
        'SELECT lac FROM base_stations WHERE cell_id = ?', (obs.cid,)
    ).fetchall()

    for row in rows:
        stored_lac = row['lac']
        if obs.lac != stored_lac:
            logger.info(
                f"ALERT: Changing LAC on CID: {obs.cid} "
                f"LAC(API): {obs.lac} LAC(DBi): {stored_lac}"
            )
            return False
        logger.debug(
            f"LAC checked - no change on CID: {obs.cid} "
            f"LAC(API): {obs.lac} LAC(DBi): {stored_lac}"
        )
    return True

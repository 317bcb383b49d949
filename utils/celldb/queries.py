"""Derived reads and table hygiene for the cell database."""

from __future__ import annotations

import sqlite3

from utils.constants import INVALID_CELL_IDS
from utils.logging import get_logger

from .errors import NotFoundError
from .models import BaseStation, Event, ImportRecord, LocationFix, Measurement

logger = get_logger('cellguard.celldb.queries')

_MEASUREMENT_SELECT = '''
    SELECT m.*,
           b.mcc AS b_mcc, b.mnc AS b_mnc, b.lac AS b_lac, b.cell_id AS b_cell_id,
           b.psc AS b_psc, b.lat AS b_lat, b.lon AS b_lon,
           b.time_first AS b_time_first, b.time_last AS b_time_last
    FROM measurements m
    JOIN base_stations b ON m.bts_id = b.id
'''


def average_signal_strength(conn: sqlite3.Connection, cell_id: int) -> float:
    """
    Mean received signal over all measurements of a cell.

    Raises:
        NotFoundError: If the cell has no measurements
    """
    row = conn.execute('''
        SELECT AVG(m.rx_signal) AS avg_signal, COUNT(m.rx_signal) AS samples
        FROM measurements m
        JOIN base_stations b ON m.bts_id = b.id
        WHERE b.cell_id = ?
    ''', (cell_id,)).fetchone()

    if row['samples'] == 0:
        raise NotFoundError(f"No measurements for CID {cell_id}")
    return float(row['avg_signal'])


def imports_by_network(conn: sqlite3.Connection, mcc: int, mnc: int) -> list[ImportRecord]:
    """Import records of one network, so out-of-network towers stay hidden."""
    cursor = conn.execute('''
        SELECT * FROM imports
        WHERE mcc = ? AND mnc = ?
        ORDER BY id
    ''', (mcc, mnc))
    return [ImportRecord.from_row(row) for row in cursor]


def default_location(conn: sqlite3.Connection, mcc: int) -> LocationFix:
    """
    First default location stored for a mobile country code.

    Raises:
        NotFoundError: If no default location exists for the MCC
    """
    row = conn.execute('''
        SELECT lat, lon FROM default_locations
        WHERE mcc = ?
        ORDER BY id
        LIMIT 1
    ''', (mcc,)).fetchone()

    if row is None:
        raise NotFoundError(f"No default location for MCC {mcc}")
    return LocationFix(row['lat'], row['lon'])


def add_default_location(conn: sqlite3.Connection, mcc: int, lat: float, lon: float) -> int:
    """Store a fallback location for a mobile country code."""
    cursor = conn.execute(
        'INSERT INTO default_locations (mcc, lat, lon) VALUES (?, ?, ?)',
        (mcc, lat, lon)
    )
    return cursor.lastrowid


def cleanse_cell_table(conn: sqlite3.Connection) -> int:
    """
    Delete base stations carrying a sentinel CID (-1 or INT_MAX).

    Their measurements go with them (ON DELETE CASCADE).

    Returns:
        Number of base stations deleted
    """
    placeholders = ', '.join('?' for _ in INVALID_CELL_IDS)
    cursor = conn.execute(
        f'DELETE FROM base_stations WHERE cell_id IN ({placeholders})',
        INVALID_CELL_IDS
    )
    if cursor.rowcount:
        logger.info(f"Removed {cursor.rowcount} base stations with invalid CID")
    return cursor.rowcount


def unsubmitted_measurements(conn: sqlite3.Connection) -> list[Measurement]:
    """Measurements not yet contributed upstream."""
    cursor = conn.execute(_MEASUREMENT_SELECT + ' WHERE m.submitted = 0 ORDER BY m.id')
    return [Measurement.from_row(row) for row in cursor]


def measurements_for_cell(conn: sqlite3.Connection, cell_id: int) -> list[Measurement]:
    """All measurements of base stations with this CID."""
    cursor = conn.execute(_MEASUREMENT_SELECT + ' WHERE b.cell_id = ? ORDER BY m.id', (cell_id,))
    return [Measurement.from_row(row) for row in cursor]


def mark_all_submitted(conn: sqlite3.Connection) -> int:
    """Flag every measurement as contributed upstream."""
    cursor = conn.execute('UPDATE measurements SET submitted = 1 WHERE submitted = 0')
    return cursor.rowcount


def list_base_stations(
    conn: sqlite3.Connection,
    mcc: int | None = None,
    limit: int = 1000
) -> list[BaseStation]:
    """Known base stations, most recently seen first."""
    if mcc is not None:
        cursor = conn.execute('''
            SELECT * FROM base_stations
            WHERE mcc = ?
            ORDER BY time_last DESC
            LIMIT ?
        ''', (mcc, limit))
    else:
        cursor = conn.execute('''
            SELECT * FROM base_stations
            ORDER BY time_last DESC
            LIMIT ?
        ''', (limit,))
    return [BaseStation.from_row(row) for row in cursor]


def list_events(conn: sqlite3.Connection, limit: int = 100) -> list[Event]:
    """Latest detection events, newest first."""
    cursor = conn.execute('''
        SELECT * FROM events
        ORDER BY timestamp DESC, id DESC
        LIMIT ?
    ''', (limit,))
    return [Event.from_row(row) for row in cursor]


def database_stats(conn: sqlite3.Connection) -> dict:
    """Get statistics about the cell database."""
    stats = {}

    for key, query in (
        ('base_stations', 'SELECT COUNT(*) FROM base_stations'),
        ('measurements', 'SELECT COUNT(*) FROM measurements'),
        ('unsubmitted', 'SELECT COUNT(*) FROM measurements WHERE submitted = 0'),
        ('imports', 'SELECT COUNT(*) FROM imports'),
        ('events', 'SELECT COUNT(*) FROM events'),
    ):
        stats[key] = conn.execute(query).fetchone()[0]

    # Count imports by radio type
    cursor = conn.execute('''
        SELECT rat, COUNT(*) as count
        FROM imports
        GROUP BY rat
        ORDER BY count DESC
    ''')
    stats['imports_by_rat'] = {row['rat']: row['count'] for row in cursor}

    # Count imports by top MCCs
    cursor = conn.execute('''
        SELECT mcc, COUNT(*) as count
        FROM imports
        GROUP BY mcc
        ORDER BY count DESC
        LIMIT 20
    ''')
    stats['top_mccs'] = {row['mcc']: row['count'] for row in cursor}

    return stats

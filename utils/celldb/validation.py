"""
Consistency check for imported cells.

Two passes over the import set, in this order:

1. Delete records that cannot be structurally valid for their declared RAT
   (no samples, LAC outside [1, 65534], CID outside [1, 268435455], or a
   long CID on a GSM/CDMA cell which only carries 16-bit cell IDs).
2. Add a fixed penalty to ``rej_cause`` for every trust check a surviving
   record fails (GPS position not exact, average range below the minimum
   GPS precision). Penalties add up; nothing is removed in this pass.

Long CID = 65536 * RNC + short CID, so RNC = long // 65536 and
short CID = long % 65536.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, replace
from typing import Iterable

from utils.constants import (
    CID_LONG_MAX,
    CID_MIN,
    CID_SHORT_MAX,
    IMPORT_MIN_SAMPLES,
    LAC_MAX,
    LAC_MIN,
    MIN_GPS_PRECISION_M,
    REJ_CAUSE_PENALTY,
    SHORT_CID_RATS,
)
from utils.logging import get_logger

from .models import ImportRecord

logger = get_logger('cellguard.celldb.validation')


@dataclass
class CleanseSummary:
    """Outcome of one cleansing pass over the import table."""
    examined: int = 0
    deleted: int = 0
    penalized: int = 0

    def to_dict(self) -> dict:
        return {
            'examined': self.examined,
            'deleted': self.deleted,
            'penalized': self.penalized,
        }


def deletion_reason(record: ImportRecord) -> str | None:
    """Return why a record must be deleted, or None if it is structurally valid."""
    if record.samples < IMPORT_MIN_SAMPLES:
        return 'no_samples'
    if record.lac < LAC_MIN:
        return 'lac_too_small'
    if record.lac > LAC_MAX:
        return 'lac_too_large'
    if record.cell_id < CID_MIN:
        return 'cid_too_small'
    if record.cell_id > CID_LONG_MAX:
        return 'cid_too_large'
    if record.cell_id > CID_SHORT_MAX and record.rat in SHORT_CID_RATS:
        return 'long_cid_on_short_cid_rat'
    return None


def rejection_penalty(record: ImportRecord) -> int:
    """Sum of penalties for every trust check the record fails."""
    penalty = 0
    # OCID "changeable" = 1 means the position is not GPS exact
    if not record.is_gps_exact:
        penalty += REJ_CAUSE_PENALTY
    if record.avg_range < MIN_GPS_PRECISION_M:
        penalty += REJ_CAUSE_PENALTY
    return penalty


def cleanse(records: Iterable[ImportRecord]) -> list[ImportRecord]:
    """
    Apply both passes to an import set and return the new set.

    The input records are left untouched; survivors are returned as copies
    with their accumulated ``rej_cause``.
    """
    survivors = [r for r in records if deletion_reason(r) is None]
    return [
        replace(r, rej_cause=r.rej_cause + rejection_penalty(r))
        for r in survivors
    ]


def cleanse_import_table(conn: sqlite3.Connection) -> CleanseSummary:
    """
    Run the cleansing pass over the stored import set.

    Must be called inside a transaction; the deletions and penalty updates
    commit together.
    """
    summary = CleanseSummary()
    delete_ids = []
    penalties = []

    logger.debug("Checking imported cells for bad LAC/CID values...")
    rows = conn.execute('SELECT * FROM imports').fetchall()
    for row in rows:
        summary.examined += 1
        record = ImportRecord.from_row(row)
        if deletion_reason(record) is not None:
            delete_ids.append((record.id,))
            continue
        penalty = rejection_penalty(record)
        if penalty:
            penalties.append((penalty, record.id))

    conn.executemany('DELETE FROM imports WHERE id = ?', delete_ids)
    conn.executemany(
        'UPDATE imports SET rej_cause = rej_cause + ? WHERE id = ?',
        penalties,
    )
    summary.deleted = len(delete_ids)
    summary.penalized = len(penalties)

    logger.info(
        f"Import check: deleted {summary.deleted} cells with bad LAC/CID, "
        f"penalized {summary.penalized} of {summary.examined - summary.deleted} remaining"
    )
    return summary

"""
Cell database - base stations, measurements and OpenCellID imports.

Stores live cell observations and the crowdsourced OpenCellID dataset,
cleanses imported cells by RAT-specific LAC/CID rules, exports unsubmitted
measurements for upload and answers the queries used for rogue base
station detection.
"""

from __future__ import annotations

from .errors import (
    CellDataError,
    NotFoundError,
    ValidationFailure,
    IOFailure,
)

from .models import (
    LocationFix,
    CellObservation,
    BaseStation,
    Measurement,
    ImportRecord,
    Event,
    DefaultLocation,
)

from .store import CellStore

from .validation import (
    CleanseSummary,
    cleanse,
    cleanse_import_table,
    deletion_reason,
    rejection_penalty,
)

from .merge import (
    MergeResult,
    record_observation,
    merge_import_record,
    check_lac_change,
)

from .ocid import (
    OcidPaths,
    ImportResult,
    ExportResult,
    import_ocid_csv,
    prepare_upload_data,
    mark_submitted,
)

from .events import (
    Status,
    NotificationPreferences,
    EventLogger,
)

from .service import CellDataService

__all__ = [
    # Errors
    'CellDataError',
    'NotFoundError',
    'ValidationFailure',
    'IOFailure',
    # Records
    'LocationFix',
    'CellObservation',
    'BaseStation',
    'Measurement',
    'ImportRecord',
    'Event',
    'DefaultLocation',
    # Store
    'CellStore',
    # Validation
    'CleanseSummary',
    'cleanse',
    'cleanse_import_table',
    'deletion_reason',
    'rejection_penalty',
    # Merge
    'MergeResult',
    'record_observation',
    'merge_import_record',
    'check_lac_change',
    # OpenCellID
    'OcidPaths',
    'ImportResult',
    'ExportResult',
    'import_ocid_csv',
    'prepare_upload_data',
    'mark_submitted',
    # Events
    'Status',
    'NotificationPreferences',
    'EventLogger',
    # Service
    'CellDataService',
]

"""
CELLGUARD - Constants and Magic Numbers

Centralized location for all hardcoded values used throughout the application.
"""

from __future__ import annotations

# =============================================================================
# CELL IDENTIFIERS
# =============================================================================

# Reserved "invalid/unknown" cell ID sentinels (signed 32-bit max as reported by radios)
CELL_ID_UNKNOWN = -1
CELL_ID_INT_MAX = 2147483647
INVALID_CELL_IDS = (CELL_ID_UNKNOWN, CELL_ID_INT_MAX)

# PSC stored when the bulk dataset leaves it blank (persisted convention)
PSC_MISSING_SENTINEL = 666

# Valid LAC range [1, 65534]
LAC_MIN = 1
LAC_MAX = 65534

# Long CID range [1, 0x0FFFFFFF]: 65536 * RNC + short CID
CID_MIN = 1
CID_LONG_MAX = 268435455

# Short CID ceiling for RATs that only carry 16-bit cell IDs
CID_SHORT_MAX = 65534
SHORT_CID_RATS = ('GSM', 'CDMA')


# =============================================================================
# IMPORT CONSISTENCY CHECK
# =============================================================================

# Minimum number of samples for an imported cell
IMPORT_MIN_SAMPLES = 1

# Minimum acceptable GPS precision of an imported cell (meters)
MIN_GPS_PRECISION_M = 50

# rej_cause increment per failed trust check
REJ_CAUSE_PENALTY = 3


# =============================================================================
# OPENCELLID FILES
# =============================================================================

# Source tag for rows coming from the OpenCellID dataset
OCID_DB_SOURCE = 'OCID'

# Well-known files under the application base data directory
OCID_DIR_NAME = 'OpenCellID'
OCID_IMPORT_FILE = 'opencellid.csv'
OCID_EXPORT_FILE = 'aimsicd-ocid-data.csv'

# Column count of an OpenCellID dataset row
OCID_COLUMN_COUNT = 19

# Header of the upload export file
OCID_EXPORT_HEADER = (
    'mcc', 'mnc', 'lac', 'cellid', 'lon', 'lat',
    'signal', 'measured_at', 'rating',
)

# Rows committed between progress callbacks during bulk import
IMPORT_PROGRESS_INTERVAL = 1000


# =============================================================================
# DETECTION EVENTS
# =============================================================================

# Detection finding raised when a known CID shows up with another LAC
DF_ID_CHANGING_LAC = 1
DF_DESC_CHANGING_LAC = 'Changing LAC'

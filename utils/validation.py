"""Input validation utilities for API endpoints."""

from __future__ import annotations

from typing import Any

from utils.constants import CELL_ID_INT_MAX, CELL_ID_UNKNOWN


def validate_latitude(lat: Any) -> float:
    """Validate and return latitude value."""
    try:
        lat_float = float(lat)
        if not -90 <= lat_float <= 90:
            raise ValueError(f"Latitude must be between -90 and 90, got {lat_float}")
        return lat_float
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid latitude: {lat}") from e


def validate_longitude(lon: Any) -> float:
    """Validate and return longitude value."""
    try:
        lon_float = float(lon)
        if not -180 <= lon_float <= 180:
            raise ValueError(f"Longitude must be between -180 and 180, got {lon_float}")
        return lon_float
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid longitude: {lon}") from e


def validate_mcc(mcc: Any) -> int:
    """Validate and return a Mobile Country Code."""
    try:
        mcc_int = int(mcc)
        if not 0 <= mcc_int <= 999:
            raise ValueError(f"MCC must be between 0 and 999, got {mcc_int}")
        return mcc_int
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid MCC: {mcc}") from e


def validate_mnc(mnc: Any) -> int:
    """Validate and return a Mobile Network Code."""
    try:
        mnc_int = int(mnc)
        if not 0 <= mnc_int <= 999:
            raise ValueError(f"MNC must be between 0 and 999, got {mnc_int}")
        return mnc_int
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid MNC: {mnc}") from e


def validate_cell_identifier(value: Any, name: str = 'CID') -> int:
    """
    Validate a LAC or CID as reported by the radio.

    The -1 and INT_MAX "unknown" markers are accepted; they are stored and
    cleaned up later.
    """
    try:
        val_int = int(value)
        if not CELL_ID_UNKNOWN <= val_int <= CELL_ID_INT_MAX:
            raise ValueError(f"{name} must be between {CELL_ID_UNKNOWN} and {CELL_ID_INT_MAX}, got {val_int}")
        return val_int
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid {name}: {value}") from e


def validate_positive_int(value: Any, name: str = 'value', max_val: int | None = None) -> int:
    """Validate and return a positive integer."""
    try:
        val_int = int(value)
        if val_int < 0:
            raise ValueError(f"{name} must be positive, got {val_int}")
        if max_val is not None and val_int > max_val:
            raise ValueError(f"{name} must be <= {max_val}, got {val_int}")
        return val_int
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid {name}: {value}") from e

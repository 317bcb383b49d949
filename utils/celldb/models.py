"""
Record model for the cell database.

Plain data holders for base stations, measurements, bulk-import records,
detection events and per-country default locations. Each record embeds its
own LocationFix; fixes are copied, never shared between records.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime


def to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def from_epoch_ms(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000)


@dataclass
class LocationFix:
    """Latitude/longitude with optional accuracy in meters."""
    latitude: float = 0.0
    longitude: float = 0.0
    accuracy: float | None = None

    def to_dict(self) -> dict:
        return {
            'lat': self.latitude,
            'lon': self.longitude,
            'accuracy': self.accuracy,
        }


@dataclass
class CellObservation:
    """A live radio observation handed over by the polling collaborator."""
    mcc: int
    mnc: int
    lac: int
    cid: int
    psc: int = -1
    lat: float = 0.0
    lon: float = 0.0
    accuracy: float = 0.0
    signal: int = 0
    rat: str = 'UNKNOWN'
    timing_advance: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> CellObservation:
        """Build an observation from a JSON-like dict, coercing numeric types."""
        return cls(
            mcc=int(data['mcc']),
            mnc=int(data['mnc']),
            lac=int(data['lac']),
            cid=int(data['cid']),
            psc=int(data.get('psc', -1)),
            lat=float(data.get('lat', 0.0)),
            lon=float(data.get('lon', 0.0)),
            accuracy=float(data.get('accuracy', 0.0)),
            signal=int(data.get('signal', 0)),
            rat=str(data.get('rat', 'UNKNOWN')),
            timing_advance=int(data.get('timing_advance', 0)),
        )

    @property
    def location(self) -> LocationFix:
        return LocationFix(self.lat, self.lon, self.accuracy)


@dataclass
class BaseStation:
    """One logical tower, unique by (LAC, CID)."""
    mcc: int
    mnc: int
    lac: int
    cell_id: int
    psc: int
    location: LocationFix
    time_first: datetime
    time_last: datetime
    id: int | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> BaseStation:
        return cls(
            id=row['id'],
            mcc=row['mcc'],
            mnc=row['mnc'],
            lac=row['lac'],
            cell_id=row['cell_id'],
            psc=row['psc'],
            location=LocationFix(row['lat'], row['lon']),
            time_first=from_epoch_ms(row['time_first']),
            time_last=from_epoch_ms(row['time_last']),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'mcc': self.mcc,
            'mnc': self.mnc,
            'lac': self.lac,
            'cid': self.cell_id,
            'psc': self.psc,
            'location': self.location.to_dict(),
            'time_first': self.time_first.isoformat(),
            'time_last': self.time_last.isoformat(),
        }


@dataclass
class Measurement:
    """A point-in-time measurement of a base station."""
    bts: BaseStation
    location: LocationFix
    time: datetime
    rx_signal: int = 0
    rat: str = 'UNKNOWN'
    timing_advance: int = 0
    submitted: bool = False
    neighbour: bool = False
    id: int | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Measurement:
        """Build from a measurements row joined with its base station (b_* columns)."""
        bts = BaseStation(
            id=row['bts_id'],
            mcc=row['b_mcc'],
            mnc=row['b_mnc'],
            lac=row['b_lac'],
            cell_id=row['b_cell_id'],
            psc=row['b_psc'],
            location=LocationFix(row['b_lat'], row['b_lon']),
            time_first=from_epoch_ms(row['b_time_first']),
            time_last=from_epoch_ms(row['b_time_last']),
        )
        return cls(
            id=row['id'],
            bts=bts,
            location=LocationFix(row['lat'], row['lon'], row['accuracy']),
            time=from_epoch_ms(row['time']),
            rx_signal=row['rx_signal'],
            rat=row['rat'],
            timing_advance=row['timing_advance'],
            submitted=bool(row['submitted']),
            neighbour=bool(row['neighbour']),
        )

    @property
    def measured_at_ms(self) -> int:
        return to_epoch_ms(self.time)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'bts_id': self.bts.id,
            'cid': self.bts.cell_id,
            'lac': self.bts.lac,
            'location': self.location.to_dict(),
            'time': self.time.isoformat(),
            'rx_signal': self.rx_signal,
            'rat': self.rat,
            'timing_advance': self.timing_advance,
            'submitted': self.submitted,
            'neighbour': self.neighbour,
        }


@dataclass
class ImportRecord:
    """A cell from an external bulk dataset (or a backup of one)."""
    db_source: str
    rat: str
    mcc: int
    mnc: int
    lac: int
    cell_id: int
    psc: int
    location: LocationFix
    is_gps_exact: bool
    avg_signal: int
    avg_range: int
    samples: int
    time_first: datetime
    time_last: datetime
    rej_cause: int = 0
    id: int | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> ImportRecord:
        return cls(
            id=row['id'],
            db_source=row['db_source'],
            rat=row['rat'],
            mcc=row['mcc'],
            mnc=row['mnc'],
            lac=row['lac'],
            cell_id=row['cell_id'],
            psc=row['psc'],
            location=LocationFix(row['lat'], row['lon']),
            is_gps_exact=bool(row['is_gps_exact']),
            avg_signal=row['avg_signal'],
            avg_range=row['avg_range'],
            samples=row['samples'],
            time_first=from_epoch_ms(row['time_first']),
            time_last=from_epoch_ms(row['time_last']),
            rej_cause=row['rej_cause'],
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'db_source': self.db_source,
            'rat': self.rat,
            'mcc': self.mcc,
            'mnc': self.mnc,
            'lac': self.lac,
            'cid': self.cell_id,
            'psc': self.psc,
            'location': self.location.to_dict(),
            'is_gps_exact': self.is_gps_exact,
            'avg_signal': self.avg_signal,
            'avg_range': self.avg_range,
            'samples': self.samples,
            'time_first': self.time_first.isoformat(),
            'time_last': self.time_last.isoformat(),
            'rej_cause': self.rej_cause,
        }


@dataclass
class Event:
    """A detection-log entry."""
    lac: int
    cell_id: int
    psc: int
    location: LocationFix
    df_id: int
    df_description: str
    timestamp: datetime = field(default_factory=datetime.now)
    id: int | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Event:
        return cls(
            id=row['id'],
            timestamp=from_epoch_ms(row['timestamp']),
            lac=row['lac'],
            cell_id=row['cell_id'],
            psc=row['psc'],
            location=LocationFix(row['lat'], row['lon'], row['accuracy']),
            df_id=row['df_id'],
            df_description=row['df_description'],
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'lac': self.lac,
            'cid': self.cell_id,
            'psc': self.psc,
            'location': self.location.to_dict(),
            'df_id': self.df_id,
            'df_description': self.df_description,
        }


@dataclass
class DefaultLocation:
    """Fallback location for a mobile country code."""
    mcc: int
    location: LocationFix
    id: int | None = None

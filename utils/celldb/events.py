"""
Detection event log.

Events are appended asynchronously on the store's writer pool. An event is
skipped when both CID and LAC are unknown (-1), or when it repeats the most
recent entry (same CID, LAC, PSC and detection id). Skipping repeats means
repeated detections such as successive Type-0 SMS are counted once.
"""

from __future__ import annotations

import sqlite3
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable

from utils.constants import CELL_ID_UNKNOWN
from utils.logging import get_logger

from .models import CellObservation, Event, to_epoch_ms
from .store import CellStore

logger = get_logger('cellguard.celldb.events')


class Status(Enum):
    """Threat levels; the value is the ordinal used by the threshold preference."""
    IDLE = 0
    OK = 1
    MEDIUM = 2
    ALARM = 3


@dataclass
class NotificationPreferences:
    """User preferences gating the notification side effect."""
    vibration_enabled: bool = True
    min_level: int = Status.MEDIUM.value

    def should_notify(self, level: Status = Status.MEDIUM) -> bool:
        return self.vibration_enabled and level.value <= self.min_level


def insert_event(conn: sqlite3.Connection, event: Event) -> Event | None:
    """
    Append an event unless it is unknown or repeats the last entry.

    Returns:
        The stored event, or None if it was skipped
    """
    # CID/LAC of -1 come from roaming, airplane mode or a broken radio API
    if event.cell_id == CELL_ID_UNKNOWN and event.lac == CELL_ID_UNKNOWN:
        return None

    last = conn.execute('''
        SELECT cell_id, lac, psc, df_id FROM events
        ORDER BY timestamp DESC, id DESC
        LIMIT 1
    ''').fetchone()
    if last is not None and (
        last['cell_id'] == event.cell_id
        and last['lac'] == event.lac
        and last['psc'] == event.psc
        and last['df_id'] == event.df_id
    ):
        return None

    cursor = conn.execute('''
        INSERT INTO events
        (timestamp, lac, cell_id, psc, lat, lon, accuracy, df_id, df_description)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
    ''', (
        to_epoch_ms(event.timestamp), event.lac, event.cell_id, event.psc,
        event.location.latitude, event.location.longitude, event.location.accuracy,
        event.df_id, event.df_description
    ))
    event.id = cursor.lastrowid
    return event


class EventLogger:
    """Fire-and-forget writer for detection events."""

    def __init__(
        self,
        store: CellStore,
        preferences: NotificationPreferences | None = None,
        notifier: Callable[[Event], None] | None = None,
    ):
        """
        Initialize event logger.

        Args:
            store: Cell store whose writer pool performs the inserts
            preferences: Notification gating preferences
            notifier: Side effect run after an event is committed,
                      e.g. a short vibration on the device
        """
        self.store = store
        self.preferences = preferences or NotificationPreferences()
        self.notifier = notifier

    def log_event(self, cell: CellObservation, df_id: int, df_description: str) -> Future:
        """Queue an event for the monitored cell and return the pending write."""
        event = Event(
            timestamp=datetime.now(),
            lac=cell.lac,
            cell_id=cell.cid,
            psc=cell.psc,
            location=cell.location,
            df_id=df_id,
            df_description=df_description,
        )
        return self.store.submit(
            lambda conn: insert_event(conn, event),
            on_success=self._on_committed,
        )

    def _on_committed(self, event: Event | None) -> None:
        if event is None:
            return
        logger.info(
            f"Added new event: id={event.df_id} time={event.timestamp.isoformat()} cid={event.cell_id}"
        )
        if self.notifier is not None and self.preferences.should_notify(Status.MEDIUM):
            self.notifier(event)

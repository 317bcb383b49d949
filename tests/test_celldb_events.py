"""Tests for the detection event log."""

from unittest.mock import MagicMock


class TestEventLogger:
    """Tests for asynchronous, deduplicated event logging."""

    def test_event_logged_and_notified(self, store, make_observation):
        from utils.celldb.events import EventLogger
        from utils.celldb.queries import list_events

        notifier = MagicMock()
        events = EventLogger(store, notifier=notifier)

        stored = events.log_event(make_observation(), 1, 'Changing LAC').result(timeout=10)

        assert stored is not None
        assert stored.id is not None
        logged = store.read(lambda conn: list_events(conn))
        assert len(logged) == 1
        assert logged[0].df_description == 'Changing LAC'
        assert logged[0].cell_id == 100
        assert logged[0].location.accuracy == 15.0
        notifier.assert_called_once_with(stored)

    def test_repeat_of_last_event_skipped(self, store, make_observation):
        from utils.celldb.events import EventLogger
        from utils.celldb.queries import list_events

        notifier = MagicMock()
        events = EventLogger(store, notifier=notifier)

        events.log_event(make_observation(), 1, 'Changing LAC').result(timeout=10)
        repeat = events.log_event(make_observation(), 1, 'Changing LAC').result(timeout=10)

        assert repeat is None
        assert len(store.read(lambda conn: list_events(conn))) == 1
        assert notifier.call_count == 1

    def test_different_finding_logged(self, store, make_observation):
        from utils.celldb.events import EventLogger
        from utils.celldb.queries import list_events

        events = EventLogger(store)

        events.log_event(make_observation(), 1, 'Changing LAC').result(timeout=10)
        events.log_event(make_observation(), 2, 'Cell not in OCID').result(timeout=10)
        events.log_event(make_observation(), 1, 'Changing LAC').result(timeout=10)

        logged = store.read(lambda conn: list_events(conn))
        assert [e.df_id for e in logged] == [1, 2, 1]

    def test_unknown_cell_skipped(self, store, make_observation):
        from utils.celldb.events import EventLogger

        notifier = MagicMock()
        events = EventLogger(store, notifier=notifier)

        result = events.log_event(make_observation(cid=-1, lac=-1), 1, 'Changing LAC').result(timeout=10)

        assert result is None
        notifier.assert_not_called()

    def test_notifier_runs_after_commit(self, store, make_observation):
        """The committed event is visible from the notification callback."""
        from utils.celldb.events import EventLogger
        from utils.celldb.queries import list_events

        seen = []

        def notifier(event):
            seen.extend(store.read(lambda conn: list_events(conn)))

        events = EventLogger(store, notifier=notifier)
        events.log_event(make_observation(), 1, 'Changing LAC').result(timeout=10)

        assert len(seen) == 1

    def test_vibration_disabled(self, store, make_observation):
        from utils.celldb.events import EventLogger, NotificationPreferences

        notifier = MagicMock()
        prefs = NotificationPreferences(vibration_enabled=False)
        events = EventLogger(store, preferences=prefs, notifier=notifier)

        events.log_event(make_observation(), 1, 'Changing LAC').result(timeout=10)

        notifier.assert_not_called()

    def test_threshold_below_medium(self, store, make_observation):
        from utils.celldb.events import EventLogger, NotificationPreferences, Status

        notifier = MagicMock()
        prefs = NotificationPreferences(min_level=Status.OK.value)
        events = EventLogger(store, preferences=prefs, notifier=notifier)

        events.log_event(make_observation(), 1, 'Changing LAC').result(timeout=10)

        notifier.assert_not_called()


class TestNotificationPreferences:
    """Tests for notification gating."""

    def test_should_notify(self):
        from utils.celldb.events import NotificationPreferences, Status

        assert NotificationPreferences().should_notify()
        assert NotificationPreferences(min_level=Status.ALARM.value).should_notify()
        assert not NotificationPreferences(min_level=Status.IDLE.value).should_notify()
        assert not NotificationPreferences(vibration_enabled=False).should_notify()

"""Tests for cell database queries and table hygiene."""

import pytest


def _add_measurement(conn, bts_id, rx_signal):
    conn.execute('''
        INSERT INTO measurements (bts_id, lat, lon, accuracy, time, rx_signal, rat, timing_advance)
        VALUES (?, 1.0, 1.0, 5.0, 0, ?, 'GSM', 0)
    ''', (bts_id, rx_signal))


class TestAverageSignal:
    """Tests for average signal strength."""

    def test_average_over_measurements(self, store, make_observation):
        from utils.celldb.merge import record_observation
        from utils.celldb.queries import average_signal_strength

        result = store.run(lambda conn: record_observation(conn, make_observation(cid=100, signal=-80)))
        store.run(lambda conn: _add_measurement(conn, result.bts_id, -90))

        assert store.read(lambda conn: average_signal_strength(conn, 100)) == -85.0

    def test_no_measurements_not_found(self, store):
        from utils.celldb.errors import NotFoundError
        from utils.celldb.queries import average_signal_strength

        with pytest.raises(NotFoundError):
            store.read(lambda conn: average_signal_strength(conn, 100))


class TestImportsByNetwork:
    """Tests for the per-network import view."""

    def test_filters_by_mcc_and_mnc(self, store, make_import):
        from utils.celldb.merge import merge_import_record
        from utils.celldb.queries import imports_by_network

        for record in (
            make_import(mcc=262, mnc=1, lac=1),
            make_import(mcc=262, mnc=2, lac=2),
            make_import(mcc=246, mnc=1, lac=3),
            make_import(mcc=262, mnc=1, lac=4),
        ):
            store.run(lambda conn: merge_import_record(conn, record))

        records = store.read(lambda conn: imports_by_network(conn, 262, 1))
        assert [r.lac for r in records] == [1, 4]
        assert all(r.rej_cause == 0 for r in records)


class TestDefaultLocation:
    """Tests for per-MCC default locations."""

    def test_missing_location_raises(self, store):
        from utils.celldb.errors import NotFoundError
        from utils.celldb.queries import default_location

        with pytest.raises(NotFoundError):
            store.read(lambda conn: default_location(conn, 262))

    def test_first_location_returned(self, store):
        from utils.celldb.queries import add_default_location, default_location

        store.run(lambda conn: add_default_location(conn, 262, 51.0, 10.0))
        store.run(lambda conn: add_default_location(conn, 262, 52.0, 11.0))
        store.run(lambda conn: add_default_location(conn, 246, 55.0, 24.0))

        location = store.read(lambda conn: default_location(conn, 262))
        assert (location.latitude, location.longitude) == (51.0, 10.0)


class TestCleanseCellTable:
    """Tests for removing base stations with sentinel CIDs."""

    def test_sentinel_cids_removed(self, store, make_observation):
        from utils.celldb.merge import record_observation
        from utils.celldb.queries import cleanse_cell_table, list_base_stations

        for cid in (-1, 2147483647, 100):
            store.run(lambda conn: record_observation(conn, make_observation(cid=cid)))

        deleted = store.run(cleanse_cell_table)

        assert deleted == 2
        remaining = store.read(lambda conn: list_base_stations(conn))
        assert [bts.cell_id for bts in remaining] == [100]
        # Measurements of deleted stations go with them
        count = store.read(lambda conn: conn.execute('SELECT COUNT(*) FROM measurements').fetchone()[0])
        assert count == 1


class TestMeasurementQueries:
    """Tests for measurement selections."""

    def test_unsubmitted_and_mark(self, store, make_observation):
        from utils.celldb.merge import record_observation
        from utils.celldb.queries import mark_all_submitted, unsubmitted_measurements

        store.run(lambda conn: record_observation(conn, make_observation(cid=1)))
        store.run(lambda conn: record_observation(conn, make_observation(cid=2)))

        pending = store.read(unsubmitted_measurements)
        assert [m.bts.cell_id for m in pending] == [1, 2]
        assert not pending[0].submitted

        assert store.run(mark_all_submitted) == 2
        assert store.read(unsubmitted_measurements) == []

    def test_measurements_for_cell(self, store, make_observation):
        from utils.celldb.merge import record_observation
        from utils.celldb.queries import measurements_for_cell

        store.run(lambda conn: record_observation(conn, make_observation(cid=7, lac=3, mcc=246)))

        measurements = store.read(lambda conn: measurements_for_cell(conn, 7))
        assert len(measurements) == 1
        assert measurements[0].bts.lac == 3
        assert measurements[0].bts.mcc == 246


class TestStats:
    """Tests for database statistics."""

    def test_database_stats(self, store, make_import, make_observation):
        from utils.celldb.merge import merge_import_record, record_observation
        from utils.celldb.queries import database_stats

        store.run(lambda conn: merge_import_record(conn, make_import(rat='GSM', lac=1)))
        store.run(lambda conn: merge_import_record(conn, make_import(rat='LTE', lac=2)))
        store.run(lambda conn: record_observation(conn, make_observation()))

        stats = store.read(database_stats)

        assert stats['imports'] == 2
        assert stats['base_stations'] == 1
        assert stats['measurements'] == 1
        assert stats['unsubmitted'] == 1
        assert stats['imports_by_rat'] == {'GSM': 1, 'LTE': 1}
        assert stats['top_mccs'] == {262: 2}

"""Tests for cell store connection handling."""

import threading


class TestConnections:
    """Tests for per-thread connections."""

    def test_finished_threads_release_connections(self, store):
        """Connections of threads that have exited do not pile up."""
        from utils.celldb.queries import database_stats

        def read_stats():
            store.read(database_stats)

        for _ in range(50):
            thread = threading.Thread(target=read_stats)
            thread.start()
            thread.join()

        # Main thread plus at most the last finished thread
        assert store.open_connections <= 2

    def test_close_connection(self, store):
        from utils.celldb.queries import database_stats

        store.read(database_stats)
        assert store.open_connections == 1

        store.close_connection()
        assert store.open_connections == 0

        # Reopened on next use
        assert store.read(database_stats)['base_stations'] == 0
        assert store.open_connections == 1

    def test_close_connection_without_one(self, store):
        result = []

        def close_in_thread():
            store.close_connection()
            result.append(store.open_connections)

        thread = threading.Thread(target=close_in_thread)
        thread.start()
        thread.join()

        assert result == [1]

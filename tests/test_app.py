"""Tests for the application service lifecycle."""

import json


class TestServiceLifecycle:
    """Tests for attaching the cell service to the Flask app."""

    def test_init_and_shutdown(self, tmp_path):
        from flask import Flask
        from app import init_service, shutdown_service
        from utils.celldb import CellDataService

        flask_app = Flask(__name__)
        service = CellDataService(db_path=tmp_path / 'cells.db', base_dir=tmp_path)

        init_service(flask_app, service)
        assert flask_app.extensions['cell_service'] is service
        assert (tmp_path / 'cells.db').exists()

        shutdown_service(flask_app)
        assert 'cell_service' not in flask_app.extensions
        assert service.stop_event.is_set()

    def test_shutdown_without_service(self):
        from flask import Flask
        from app import shutdown_service

        shutdown_service(Flask(__name__))

    def test_create_service_uses_config(self, tmp_path, monkeypatch):
        import config
        from app import create_service

        monkeypatch.setattr(config, 'DB_PATH', tmp_path / 'configured.db')
        monkeypatch.setattr(config, 'DATA_DIR', tmp_path)
        monkeypatch.setattr(config, 'NOTIFY_MIN_LEVEL', 3)

        service = create_service()
        try:
            assert service.store.db_path == tmp_path / 'configured.db'
            assert service.paths.import_file == tmp_path / 'OpenCellID' / 'opencellid.csv'
            assert service.events.preferences.min_level == 3
        finally:
            service.close()


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self):
        import config
        from app import app

        with app.test_client() as client:
            response = client.get('/health')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['status'] == 'ok'
        assert data['version'] == config.VERSION

    def test_request_releases_connection(self, tmp_path):
        """The request thread's database connection is closed after the request."""
        from app import app, init_service, shutdown_service
        from utils.celldb import CellDataService

        service = CellDataService(db_path=tmp_path / 'cells.db', base_dir=tmp_path)
        init_service(app, service)
        try:
            assert service.store.open_connections == 1

            with app.test_client() as client:
                client.get('/health')

            assert service.store.open_connections == 0
        finally:
            shutdown_service(app)

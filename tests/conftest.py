"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest


@pytest.fixture
def store(tmp_path):
    """Cell store on a temporary database file."""
    from utils.celldb.store import CellStore

    store = CellStore(tmp_path / 'cells.db')
    store.init_schema()
    yield store
    store.close()


@pytest.fixture
def service(tmp_path):
    """Cell data service with its base data directory under tmp_path."""
    from utils.celldb.service import CellDataService

    service = CellDataService(
        db_path=tmp_path / 'cells.db',
        base_dir=tmp_path / 'data',
    )
    service.start()
    yield service
    service.close()


@pytest.fixture
def app(service):
    """Create Flask app with the cells blueprint."""
    from flask import Flask
    from routes.cells import cells_bp

    app = Flask(__name__)
    app.config['TESTING'] = True
    app.register_blueprint(cells_bp)
    app.extensions['cell_service'] = service

    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def make_import():
    """Factory for ImportRecords that pass every check unless overridden."""
    from utils.celldb.models import ImportRecord, LocationFix

    def factory(**overrides):
        now = datetime(2024, 1, 1, 12, 0, 0)
        fields = dict(
            db_source='OCID',
            rat='LTE',
            mcc=262,
            mnc=1,
            lac=100,
            cell_id=1000,
            psc=50,
            location=LocationFix(52.52, 13.405),
            is_gps_exact=True,
            avg_signal=-80,
            avg_range=500,
            samples=10,
            time_first=now,
            time_last=now,
            rej_cause=0,
        )
        fields.update(overrides)
        return ImportRecord(**fields)

    return factory


@pytest.fixture
def make_observation():
    """Factory for CellObservations with a valid GPS fix unless overridden."""
    from utils.celldb.models import CellObservation

    def factory(**overrides):
        fields = dict(
            mcc=262,
            mnc=1,
            lac=10,
            cid=100,
            psc=7,
            lat=52.52,
            lon=13.405,
            accuracy=15.0,
            signal=-85,
            rat='GSM',
            timing_advance=2,
        )
        fields.update(overrides)
        return CellObservation(**fields)

    return factory

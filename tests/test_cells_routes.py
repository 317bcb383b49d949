"""
Tests for the cells blueprint.

Tests cover:
- Observation ingestion and LAC change reporting
- OpenCellID import, check and per-network listing
- Default locations, signal averages and base station hygiene
- Upload export and submission
"""

import json

OBSERVATION = {
    'mcc': 262,
    'mnc': 1,
    'lac': 10,
    'cid': 100,
    'psc': 7,
    'lat': 52.52,
    'lon': 13.405,
    'accuracy': 15.0,
    'signal': -85,
    'rat': 'GSM',
    'timing_advance': 2,
}


class TestObservations:
    """Tests for POST /cells/observations."""

    def test_first_observation(self, client):
        response = client.post('/cells/observations', json=OBSERVATION)
        assert response.status_code == 200

        data = json.loads(response.data)
        assert data['status'] == 'success'
        assert data['lac_ok'] is True
        assert data['merge']['bts_created'] is True

    def test_lac_change_reported(self, client, service):
        client.post('/cells/observations', json=OBSERVATION)

        response = client.post('/cells/observations', json={**OBSERVATION, 'lac': 11})
        data = json.loads(response.data)

        assert data['lac_ok'] is False
        assert data['merge']['bts_created'] is True

    def test_missing_field(self, client):
        payload = {k: v for k, v in OBSERVATION.items() if k != 'cid'}
        response = client.post('/cells/observations', json=payload)
        assert response.status_code == 400

    def test_invalid_latitude(self, client):
        response = client.post('/cells/observations', json={**OBSERVATION, 'lat': 123.0})
        assert response.status_code == 400

    def test_list_base_stations(self, client):
        client.post('/cells/observations', json=OBSERVATION)

        data = json.loads(client.get('/cells/bts').data)
        assert data['count'] == 1
        assert data['base_stations'][0]['cid'] == 100


class TestQueries:
    """Tests for read endpoints."""

    def test_signal_not_found(self, client):
        response = client.get('/cells/signal/100')
        assert response.status_code == 404

    def test_signal_average(self, client):
        client.post('/cells/observations', json=OBSERVATION)

        data = json.loads(client.get('/cells/signal/100').data)
        assert data['average_signal'] == -85.0

    def test_default_location_lifecycle(self, client):
        assert client.get('/cells/default_location/262').status_code == 404

        response = client.post('/cells/default_location', json={'mcc': 262, 'lat': 51.0, 'lon': 10.0})
        assert response.status_code == 201

        data = json.loads(client.get('/cells/default_location/262').data)
        assert data['location']['lat'] == 51.0

    def test_imports_require_network(self, client):
        assert client.get('/cells/imports?mcc=262').status_code == 400

    def test_cleanse_bts(self, client):
        client.post('/cells/observations', json={**OBSERVATION, 'cid': -1})

        data = json.loads(client.post('/cells/bts/cleanse').data)
        assert data['deleted'] == 1


class TestOcidImport:
    """Tests for the background import and consistency check."""

    def test_import_check_and_list(self, client, service):
        import routes.cells as cells_module

        dataset = service.paths.import_file
        dataset.parent.mkdir(parents=True)
        dataset.write_text(
            'lat,lon,mcc,mnc,lac,cellid,averageSignalStrength,range,samples,'
            'changeable,radio,rnc,cid,psc,tac,pci,sid,nid,bid\n'
            '54.6,25.1,262,1,20,1294,0,100,4,0,GSM,,,,,,,,\n'
            '54.6,25.1,262,1,21,70000,0,100,4,0,GSM,,,,,,,,\n'
            '54.6,25.1,262,1,22,70000,0,10,4,1,LTE,,,,,,,,\n',
            encoding='utf-8'
        )

        response = client.post('/cells/imports/ocid')
        assert response.status_code == 202
        cells_module.import_thread.join(timeout=10)

        status = json.loads(client.get('/cells/imports/status').data)
        assert status['running'] is False
        assert status['result']['rows_inserted'] == 3

        check = json.loads(client.post('/cells/imports/check').data)
        assert check['deleted'] == 1
        assert check['penalized'] == 1

        data = json.loads(client.get('/cells/imports?mcc=262&mnc=1').data)
        assert {(r['lac'], r['rej_cause']) for r in data['imports']} == {(20, 0), (22, 6)}

        exists = json.loads(client.get('/cells/imports/exists/1294').data)
        assert exists['exists'] is True

    def test_import_missing_file(self, client):
        import routes.cells as cells_module

        client.post('/cells/imports/ocid')
        cells_module.import_thread.join(timeout=10)

        status = json.loads(client.get('/cells/imports/status').data)
        assert status['result']['success'] is False


class TestExport:
    """Tests for upload export and submission."""

    def test_nothing_to_export(self, client, service):
        data = json.loads(client.post('/cells/export').data)
        assert data['status'] == 'nothing_to_export'
        assert not service.paths.export_file.exists()

    def test_export_and_submit(self, client, service):
        client.post('/cells/observations', json=OBSERVATION)

        data = json.loads(client.post('/cells/export').data)
        assert data['status'] == 'exported'
        assert data['rows_written'] == 1
        assert service.paths.export_file.exists()

        submitted = json.loads(client.post('/cells/export/submitted').data)
        assert submitted['marked'] == 1

        stats = json.loads(client.get('/cells/stats').data)['stats']
        assert stats['unsubmitted'] == 0


class TestEvents:
    """Tests for the event endpoints."""

    def test_queue_event(self, client, service):
        response = client.post('/cells/events', json={**OBSERVATION, 'df_id': 2, 'df_description': 'Test'})
        assert response.status_code == 202

        # Wait for the writer pool to drain
        service.store.submit(lambda conn: None).result(timeout=10)

        data = json.loads(client.get('/cells/events').data)
        assert data['count'] == 1
        assert data['events'][0]['df_id'] == 2

    def test_event_requires_df_id(self, client):
        response = client.post('/cells/events', json=OBSERVATION)
        assert response.status_code == 400

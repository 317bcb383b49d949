"""Cell database route handlers for observations, OpenCellID data and events."""

from __future__ import annotations

import threading
from typing import Any

from flask import Blueprint, Response, current_app, jsonify, request

from utils.celldb import CellDataService, CellObservation, NotFoundError
from utils.constants import DF_DESC_CHANGING_LAC, DF_ID_CHANGING_LAC
from utils.logging import routes_logger as logger
from utils.validation import (
    validate_cell_identifier,
    validate_latitude,
    validate_longitude,
    validate_mcc,
    validate_mnc,
    validate_positive_int,
)

cells_bp = Blueprint('cells', __name__, url_prefix='/cells')

# Background OpenCellID import state
import_lock = threading.Lock()
import_thread: threading.Thread | None = None
import_state: dict[str, Any] = {
    'running': False,
    'rows_done': 0,
    'total_rows': 0,
    'result': None,
}


def get_service() -> CellDataService:
    """Cell data service registered on the current app."""
    return current_app.extensions['cell_service']


def _parse_observation(data: dict) -> CellObservation:
    """Validate request JSON and build a CellObservation."""
    for key in ('mcc', 'mnc', 'lac', 'cid'):
        if key not in data:
            raise ValueError(f"{key} is required")

    obs = CellObservation.from_dict(data)
    validate_mcc(obs.mcc)
    validate_mnc(obs.mnc)
    validate_cell_identifier(obs.lac, 'LAC')
    validate_cell_identifier(obs.cid, 'CID')
    validate_latitude(obs.lat)
    validate_longitude(obs.lon)
    return obs


@cells_bp.route('/observations', methods=['POST'])
def add_observation() -> Response:
    """Merge a live observation and report whether its LAC changed."""
    data = request.get_json(silent=True) or {}
    try:
        obs = _parse_observation(data)
    except (ValueError, TypeError) as e:
        return jsonify({'status': 'error', 'message': str(e)}), 400

    service = get_service()
    lac_ok, merge_result = service.observe(obs)
    if not lac_ok:
        service.log_event(obs, DF_ID_CHANGING_LAC, DF_DESC_CHANGING_LAC)

    return jsonify({
        'status': 'success',
        'lac_ok': lac_ok,
        'merge': merge_result.to_dict(),
    })


@cells_bp.route('/bts')
def get_base_stations() -> Response:
    """List known base stations, optionally for one MCC."""
    try:
        mcc = request.args.get('mcc')
        mcc = validate_mcc(mcc) if mcc is not None else None
        limit = validate_positive_int(request.args.get('limit', 1000), 'limit', max_val=10000)
    except ValueError as e:
        return jsonify({'status': 'error', 'message': str(e)}), 400

    stations = get_service().list_base_stations(mcc=mcc, limit=limit)
    return jsonify({
        'status': 'success',
        'count': len(stations),
        'base_stations': [bts.to_dict() for bts in stations],
    })


@cells_bp.route('/bts/cleanse', methods=['POST'])
def cleanse_base_stations() -> Response:
    """Remove base stations with an invalid CID."""
    deleted = get_service().cleanse_cell_table()
    return jsonify({'status': 'success', 'deleted': deleted})


@cells_bp.route('/signal/<int:cid>')
def get_average_signal(cid: int) -> Response:
    """Average received signal strength of a cell."""
    try:
        average = get_service().average_signal_strength(cid)
    except NotFoundError as e:
        return jsonify({'status': 'error', 'message': str(e)}), 404
    return jsonify({'status': 'success', 'cid': cid, 'average_signal': average})


@cells_bp.route('/measurements/<int:cid>')
def get_measurements(cid: int) -> Response:
    measurements = get_service().measurements_for_cell(cid)
    return jsonify({
        'status': 'success',
        'count': len(measurements),
        'measurements': [m.to_dict() for m in measurements],
    })


@cells_bp.route('/imports')
def get_imports() -> Response:
    """Imported cells of the given network."""
    try:
        mcc = validate_mcc(request.args.get('mcc'))
        mnc = validate_mnc(request.args.get('mnc'))
    except ValueError as e:
        return jsonify({'status': 'error', 'message': str(e)}), 400

    records = get_service().imports_by_network(mcc, mnc)
    return jsonify({
        'status': 'success',
        'count': len(records),
        'imports': [r.to_dict() for r in records],
    })


@cells_bp.route('/imports/exists/<int:cid>')
def import_exists(cid: int) -> Response:
    return jsonify({'status': 'success', 'cid': cid, 'exists': get_service().open_cell_exists(cid)})


@cells_bp.route('/imports/ocid', methods=['POST'])
def start_ocid_import() -> Response:
    """Start importing the OpenCellID dataset in the background."""
    global import_thread

    service = get_service()

    with import_lock:
        if import_state['running']:
            return jsonify({'status': 'error', 'message': 'Import already running'}), 409

        import_state.update(running=True, rows_done=0, total_rows=0, result=None)

        def on_progress(current: int, total: int) -> None:
            import_state['rows_done'] = current
            import_state['total_rows'] = total

        def run_import() -> None:
            try:
                result = service.import_ocid(progress_callback=on_progress)
                import_state['result'] = result.to_dict()
            finally:
                import_state['running'] = False

        import_thread = threading.Thread(target=run_import, daemon=True)
        import_thread.start()

    logger.info(f"OpenCellID import started from {service.paths.import_file}")
    return jsonify({'status': 'started', 'path': str(service.paths.import_file)}), 202


@cells_bp.route('/imports/status')
def ocid_import_status() -> Response:
    return jsonify({'status': 'success', **import_state})


@cells_bp.route('/imports/check', methods=['POST'])
def check_imports() -> Response:
    """Run the consistency check over imported cells."""
    summary = get_service().check_imports()
    return jsonify({'status': 'success', **summary.to_dict()})


@cells_bp.route('/default_location/<int:mcc>')
def get_default_location(mcc: int) -> Response:
    try:
        location = get_service().default_location(mcc)
    except NotFoundError as e:
        return jsonify({'status': 'error', 'message': str(e)}), 404
    return jsonify({'status': 'success', 'mcc': mcc, 'location': location.to_dict()})


@cells_bp.route('/default_location', methods=['POST'])
def add_default_location() -> Response:
    data = request.get_json(silent=True) or {}
    try:
        mcc = validate_mcc(data.get('mcc'))
        lat = validate_latitude(data.get('lat'))
        lon = validate_longitude(data.get('lon'))
    except ValueError as e:
        return jsonify({'status': 'error', 'message': str(e)}), 400

    location_id = get_service().add_default_location(mcc, lat, lon)
    return jsonify({'status': 'success', 'id': location_id}), 201


@cells_bp.route('/export', methods=['POST'])
def export_upload_data() -> Response:
    """Prepare the OpenCellID upload file from unsubmitted measurements."""
    result = get_service().prepare_upload()
    if result.success or result.status == 'nothing_to_export':
        return jsonify(result.to_dict())
    return jsonify(result.to_dict()), 500


@cells_bp.route('/export/submitted', methods=['POST'])
def export_submitted() -> Response:
    """Upload went through: mark every measurement as submitted."""
    count = get_service().upload_completed()
    return jsonify({'status': 'success', 'marked': count})


@cells_bp.route('/events')
def get_events() -> Response:
    try:
        limit = validate_positive_int(request.args.get('limit', 100), 'limit', max_val=10000)
    except ValueError as e:
        return jsonify({'status': 'error', 'message': str(e)}), 400

    events = get_service().list_events(limit)
    return jsonify({
        'status': 'success',
        'count': len(events),
        'events': [e.to_dict() for e in events],
    })


@cells_bp.route('/events', methods=['POST'])
def add_event() -> Response:
    """Queue a detection event for the monitored cell."""
    data = request.get_json(silent=True) or {}
    try:
        obs = _parse_observation(data)
        df_id = validate_positive_int(data.get('df_id'), 'df_id')
        df_description = str(data.get('df_description', ''))
    except (ValueError, TypeError) as e:
        return jsonify({'status': 'error', 'message': str(e)}), 400

    get_service().log_event(obs, df_id, df_description)
    return jsonify({'status': 'queued'}), 202


@cells_bp.route('/stats')
def get_stats() -> Response:
    return jsonify({'status': 'success', 'stats': get_service().stats()})

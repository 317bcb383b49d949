"""
CELLGUARD - Cell Observation Store

Flask application and service lifecycle.
"""

from __future__ import annotations

import atexit
import sqlite3
import sys

from flask import Flask, Response, current_app, jsonify

import config
from utils.celldb import CellDataService, NotificationPreferences
from utils.logging import app_logger as logger


# Create Flask app
app = Flask(__name__)


# ============================================
# SERVICE LIFECYCLE
# ============================================

def create_service() -> CellDataService:
    """Build the cell data service from configuration."""
    return CellDataService(
        db_path=config.DB_PATH,
        base_dir=config.DATA_DIR,
        settle_seconds=config.IMPORT_SETTLE_SECONDS,
        event_workers=config.EVENT_WORKERS,
        preferences=NotificationPreferences(
            vibration_enabled=config.NOTIFY_VIBRATE,
            min_level=config.NOTIFY_MIN_LEVEL,
        ),
        notifier=lambda event: logger.warning(
            f"Detection event {event.df_id} ({event.df_description}) on CID {event.cell_id}"
        ),
    )


def init_service(flask_app: Flask, service: CellDataService) -> CellDataService:
    """Start the service and attach it to a Flask app."""
    service.start()
    flask_app.extensions['cell_service'] = service
    return service


@app.teardown_appcontext
def release_db_connection(exc: BaseException | None = None) -> None:
    """Close the request thread's database connection."""
    service = current_app.extensions.get('cell_service')
    if service is not None:
        service.store.close_connection()


def shutdown_service(flask_app: Flask) -> None:
    """Stop the service attached to a Flask app, waiting for pending writes."""
    service = flask_app.extensions.pop('cell_service', None)
    if service is not None:
        service.close()


# ============================================
# MAIN ROUTES
# ============================================

@app.route('/health')
def health() -> Response:
    return jsonify({'status': 'ok', 'version': config.VERSION})


def main() -> None:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description='CELLGUARD - Cell Observation Store',
        epilog='Environment variables: CELLGUARD_HOST, CELLGUARD_PORT, CELLGUARD_DEBUG, '
               'CELLGUARD_LOG_LEVEL, CELLGUARD_DATA_DIR, CELLGUARD_DB_PATH'
    )
    parser.add_argument(
        '-p', '--port',
        type=int,
        default=config.PORT,
        help=f'Port to run server on (default: {config.PORT})'
    )
    parser.add_argument(
        '-H', '--host',
        default=config.HOST,
        help=f'Host to bind to (default: {config.HOST})'
    )
    parser.add_argument(
        '-d', '--debug',
        action='store_true',
        default=config.DEBUG,
        help='Enable debug mode'
    )
    args = parser.parse_args()

    config.configure_logging()

    print("=" * 50)
    print("  CELLGUARD // Cell Observation Store")
    print("=" * 50)
    print()

    try:
        init_service(app, create_service())
    except (OSError, sqlite3.Error) as e:
        print(f"Error: cannot open cell database at {config.DB_PATH}: {e}")
        sys.exit(1)
    atexit.register(shutdown_service, app)

    # Register blueprints
    from routes import register_blueprints
    register_blueprints(app)

    print(f"Data directory: {config.DATA_DIR}")
    print(f"Database:       {config.DB_PATH}")
    print(f"Open http://localhost:{args.port}/cells/stats in your browser")
    print()
    print("Press Ctrl+C to stop")
    print()

    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True)


if __name__ == '__main__':
    main()

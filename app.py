"""Flask service for the File Archiver"""

import logging
import signal
import sys
import threading
from typing import Optional

from flask import Flask, jsonify
from werkzeug.serving import make_server

from config.settings import ArchiverSettings, ConfigError, load_settings
from routes import tasks_api_bp, archives_api_bp
from utils import FileManager, ArchiveCleaner
from utils.archive_tasks import AdmissionController, TaskProcessor, TaskStore
from utils.logging_config import configure_logging

logger = logging.getLogger('archiver')

# Loggers that receive the masking handlers
LOGGER_NAMES = ('archiver', 'utils', 'routes')


class InFlightRequests:
    """Counts requests currently being handled"""

    def __init__(self):
        self._active = 0
        self._condition = threading.Condition()

    def started(self):
        with self._condition:
            self._active += 1

    def finished(self, exc=None):
        with self._condition:
            self._active -= 1
            self._condition.notify_all()

    @property
    def active(self) -> int:
        with self._condition:
            return self._active

    def wait_idle(self, timeout: float) -> bool:
        """Wait until no request is in flight; False if the timeout expired"""
        with self._condition:
            return self._condition.wait_for(lambda: self._active == 0, timeout)


def create_app(settings: Optional[ArchiverSettings] = None, processor=None) -> Flask:
    """
    Build the Flask application and its process-wide task store

    Args:
        settings: Service settings (loaded from config when None)
        processor: Replacement for the default TaskProcessor

    Returns:
        Configured Flask app. The store, file manager and settings are
        available in app.config.
    """
    if settings is None:
        settings = load_settings()

    file_manager = FileManager(settings.archive_dir)
    if processor is None:
        processor = TaskProcessor(
            archive_dir=file_manager.archive_dir,
            allowed_extensions=settings.allowed_extensions,
            chunk_size=settings.download_chunk_size,
            download_timeout=settings.download_timeout_seconds
        )

    task_store = TaskStore(
        admission=AdmissionController(settings.max_concurrent_tasks),
        processor=processor,
        max_files_per_task=settings.max_files_per_task
    )

    app = Flask(__name__)
    app.config['archiver_settings'] = settings
    app.config['file_manager'] = file_manager
    app.config['task_store'] = task_store
    app.config['in_flight'] = in_flight = InFlightRequests()

    app.before_request(in_flight.started)
    app.teardown_request(in_flight.finished)

    app.register_blueprint(tasks_api_bp)
    app.register_blueprint(archives_api_bp)

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'success': False, 'error': 'not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'success': False, 'error': 'method not allowed'}), 405

    return app


def run_server(app: Flask, settings: ArchiverSettings):
    """
    Serve until SIGINT/SIGTERM, then stop accepting requests

    Requests are handled one thread each. In-flight requests get
    shutdown_grace_seconds to finish; running archive builds are daemon
    threads and are abandoned when the process exits.
    """
    server = make_server(settings.host, settings.port, app, threaded=True)
    stop_requested = threading.Event()

    def handle_signal(signum, frame):
        logger.info("Shutting down server...")
        stop_requested.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    serve_thread = threading.Thread(target=server.serve_forever, name='http-server', daemon=True)
    serve_thread.start()
    logger.info(f"Server starting on {settings.host}:{settings.port}")

    stop_requested.wait()

    # Stop accepting connections, then give running requests the grace period
    server.shutdown()
    serve_thread.join()
    in_flight = app.config['in_flight']
    if not in_flight.wait_idle(settings.shutdown_grace_seconds):
        logger.warning(f"Server forced to shutdown with {in_flight.active} requests in flight")
    server.server_close()

    logger.info("Server exiting")


def main(config_file: Optional[str] = None) -> int:
    try:
        settings = load_settings(config_file)
    except ConfigError as e:
        configure_logging(LOGGER_NAMES)
        logger.critical(f"failed to load config: {e}")
        return 1

    configure_logging(LOGGER_NAMES, settings.log_level, settings.log_file)

    app = create_app(settings)
    cleaner = ArchiveCleaner(
        app.config['file_manager'],
        max_age_seconds=settings.archive_max_age_seconds,
        interval_seconds=settings.cleanup_interval_seconds
    )
    cleaner.start()

    try:
        run_server(app, settings)
    except OSError as e:
        logger.critical(f"listen: {e}")
        return 1
    finally:
        cleaner.shutdown()

    return 0


if __name__ == '__main__':
    sys.exit(main(sys.argv[1] if len(sys.argv) > 1 else None))

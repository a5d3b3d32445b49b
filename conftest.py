"""Shared pytest fixtures for the archiver tests"""

import sys
import threading
from pathlib import Path

import pytest
from flask import Flask, Response, request
from werkzeug.serving import make_server

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import ArchiverSettings


class FileOrigin:
    """
    Local HTTP server standing in for the remote file hosts.

    Serves ``/<anything>/<name>`` for every name in ``files`` and
    ``/download?file=<name>`` for query-style links; anything else is 404.
    Every request path is recorded in ``hits``.
    """

    def __init__(self):
        self.files = {
            'report.pdf': b'%PDF-1.4\n' + b'report body ' * 200,
            'photo.png': b'\x89PNG\r\n\x1a\n' + b'\x00pixels' * 100,
            'scan.jpg': b'\xff\xd8\xff\xe0' + b'jpeg data ' * 50,
            'notes.txt': b'plain text notes',
        }
        self.hits = []
        self._lock = threading.Lock()

        app = Flask(__name__)

        @app.route('/<path:name>')
        def serve(name):
            with self._lock:
                self.hits.append(name)
            basename = request.args.get('file') or name.rsplit('/', 1)[-1]
            content = self.files.get(basename)
            if content is None:
                return Response('missing', status=404)
            return Response(content, mimetype='application/octet-stream')

        self._server = make_server('127.0.0.1', 0, app, threaded=True)
        self.base_url = f"http://127.0.0.1:{self._server.server_port}"
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def start(self):
        self._thread.start()

    def stop(self):
        self._server.shutdown()
        self._server.server_close()


@pytest.fixture
def file_origin():
    origin = FileOrigin()
    origin.start()
    yield origin
    origin.stop()


@pytest.fixture
def archive_dir(tmp_path):
    path = tmp_path / 'archives'
    path.mkdir()
    return path


@pytest.fixture
def settings(archive_dir):
    return ArchiverSettings(
        allowed_extensions=['.pdf', '.png', '.jpg'],
        max_files_per_task=2,
        max_concurrent_tasks=2,
        archive_dir=str(archive_dir)
    )


class BlockingProcessor:
    """Processor stand-in that holds its slot until ``release`` is set"""

    def __init__(self):
        self.release = threading.Event()
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def process(self, task, urls):
        with self._lock:
            self.calls.append((task.task_id, list(urls)))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            self.release.wait(10)
        finally:
            with self._lock:
                self.active -= 1
        task.mark_done(f"/archives/{task.task_id}.zip")


@pytest.fixture
def blocking_processor():
    processor = BlockingProcessor()
    yield processor
    processor.release.set()


@pytest.fixture(autouse=True)
def no_proxy(monkeypatch):
    """Keep requests to the local origin off any configured proxy"""
    for name in ('HTTP_PROXY', 'HTTPS_PROXY', 'ALL_PROXY', 'http_proxy', 'https_proxy', 'all_proxy'):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('NO_PROXY', '127.0.0.1,localhost')
    monkeypatch.setenv('no_proxy', '127.0.0.1,localhost')

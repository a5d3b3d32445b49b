#!/usr/bin/env python3
"""
Test Archive API end to end

Drives the Flask app through its test client against a local file origin:
1. Create a task, add files up to the threshold, poll until done, download
2. A sole disallowed file ends done with an empty archive
3. Not found, bad input, busy and unsafe filename responses

Run: pytest test_archive_api.py
"""

import io
import sys
import time
import zipfile
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from app import create_app
from config.settings import ArchiverSettings
from utils.file_manager import FileManager


@pytest.fixture
def client(settings):
    app = create_app(settings)
    app.config['TESTING'] = True
    return app.test_client()


def _create_task(client):
    response = client.post('/tasks')
    assert response.status_code == 201
    return response.get_json()


def _add_file(client, task_id, url):
    return client.post(f'/tasks/{task_id}/files', json={'url': url})


def _settings_with_threshold(tmp_path, max_files):
    return ArchiverSettings(
        allowed_extensions=['.pdf', '.png'],
        max_files_per_task=max_files,
        max_concurrent_tasks=2,
        archive_dir=str(tmp_path / 'archives')
    )


def _wait_terminal(client, task_id, timeout=10):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        data = client.get(f'/tasks/{task_id}').get_json()
        if data['status'] in ('done', 'error'):
            return data
        time.sleep(0.02)
    pytest.fail(f"task {task_id} did not finish within {timeout}s")


def test_end_to_end_two_files(client, file_origin):
    print("\nTesting: End To End...")
    task = _create_task(client)
    assert task['status'] == 'created'
    assert task['file_urls'] == []
    assert 'result_url' not in task
    print(f"✓ Task created: {task['id'][:8]}...")

    first = _add_file(client, task['id'], file_origin.url('docs/report.pdf'))
    assert first.status_code == 202
    assert first.get_json()['processing_started'] is False

    second = _add_file(client, task['id'], file_origin.url('img/photo.png'))
    assert second.status_code == 202
    assert second.get_json() == {'success': True, 'file_count': 2, 'processing_started': True}
    print("✓ Threshold reached, processing started")

    data = _wait_terminal(client, task['id'])
    assert data['status'] == 'done'
    assert data['result_url'] == f"/archives/{task['id']}.zip"
    assert 'error_details' not in data
    assert data['file_urls'] == [
        file_origin.url('docs/report.pdf'),
        file_origin.url('img/photo.png'),
    ]
    print("✓ Task done with result_url")

    archive_response = client.get(data['result_url'])
    assert archive_response.status_code == 200
    assert archive_response.mimetype == 'application/zip'
    assert 'attachment' in archive_response.headers['Content-Disposition']
    assert f"{task['id']}.zip" in archive_response.headers['Content-Disposition']

    with zipfile.ZipFile(io.BytesIO(archive_response.data)) as archive:
        assert sorted(archive.namelist()) == ['photo.png', 'report.pdf']
        assert archive.read('report.pdf') == file_origin.files['report.pdf']
    print("✓ Downloaded archive holds both files")


def test_sole_disallowed_file(tmp_path, file_origin):
    app = create_app(_settings_with_threshold(tmp_path, 1))
    client = app.test_client()

    task = _create_task(client)
    url = file_origin.url('notes.txt')
    response = _add_file(client, task['id'], url)
    assert response.status_code == 202
    assert response.get_json()['processing_started'] is True

    data = _wait_terminal(client, task['id'])
    assert data['status'] == 'done'
    assert data['error_details'] == f"file extension not allowed: {url}"
    assert file_origin.hits == []

    archive_response = client.get(data['result_url'])
    assert archive_response.status_code == 200
    with zipfile.ZipFile(io.BytesIO(archive_response.data)) as archive:
        assert archive.namelist() == []
    print("✓ Disallowed file reported, archive empty")


def test_archive_creation_failure_reported(tmp_path, file_origin):
    app = create_app(_settings_with_threshold(tmp_path, 1))
    client = app.test_client()

    # Replace the archive directory with a plain file after startup
    archive_dir = app.config['file_manager'].archive_dir
    archive_dir.rmdir()
    archive_dir.write_text('not a directory')

    task = _create_task(client)
    _add_file(client, task['id'], file_origin.url('report.pdf'))

    data = _wait_terminal(client, task['id'])
    assert data['status'] == 'error'
    assert data['error_details'].startswith('failed to create zip file:')
    assert 'result_url' not in data
    assert file_origin.hits == []
    print("✓ Unwritable storage ends in error without downloads")


def test_unknown_task(client):
    assert client.get('/tasks/nope').status_code == 404
    response = _add_file(client, 'nope', 'https://example.com/a.pdf')
    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'error': 'task not found'}
    print("✓ Unknown task is 404")


@pytest.mark.parametrize('kwargs', [
    {'data': 'garbage', 'content_type': 'application/json'},
    {'json': {}},
])
def test_unknown_task_checked_before_body(client, kwargs):
    response = client.post('/tasks/nope/files', **kwargs)
    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'error': 'task not found'}
    print("✓ Unknown task wins over a malformed body")


@pytest.mark.parametrize('kwargs', [
    {'data': 'not json', 'content_type': 'application/json'},
    {'json': ['https://example.com/a.pdf']},
    {'json': 'https://example.com/a.pdf'},
    {'json': {}},
    {'json': {'url': 42}},
    {'json': {'url': ''}},
])
def test_bad_request_body(client, kwargs):
    task = _create_task(client)
    response = client.post(f"/tasks/{task['id']}/files", **kwargs)

    assert response.status_code == 400
    assert response.get_json()['error'] == 'invalid request body'
    assert client.get(f"/tasks/{task['id']}").get_json()['file_urls'] == []
    print("✓ Malformed body rejected, nothing recorded")


def test_unvalidated_urls_are_accepted(client):
    """Any string is recorded; filtering happens during processing."""
    task = _create_task(client)
    response = _add_file(client, task['id'], 'definitely not a url')
    assert response.status_code == 202
    assert client.get(f"/tasks/{task['id']}").get_json()['file_urls'] == ['definitely not a url']


def test_busy_responses(settings, blocking_processor):
    print("\nTesting: Busy Responses...")
    app = create_app(settings, processor=blocking_processor)
    client = app.test_client()
    store = app.config['task_store']

    # Fill both slots
    running = []
    for _ in range(settings.max_concurrent_tasks):
        task = _create_task(client)
        running.append(task['id'])
        _add_file(client, task['id'], 'https://example.com/1.pdf')
        assert _add_file(client, task['id'], 'https://example.com/2.pdf').get_json()['processing_started']
    assert store.is_busy()

    response = client.post('/tasks')
    assert response.status_code == 503
    assert response.get_json()['error'] == 'server is busy, please try again later'
    print("✓ New task refused while all slots are taken")

    blocking_processor.release.set()
    for task_id in running:
        store.wait_for(task_id, timeout=5)
    assert not store.is_busy()
    assert client.post('/tasks').status_code == 201
    print("✓ Task creation accepted again once slots free up")


def test_append_busy_keeps_file(settings, blocking_processor):
    app = create_app(settings, processor=blocking_processor)
    client = app.test_client()

    # Created before the slots fill up
    waiting = _create_task(client)
    for _ in range(settings.max_concurrent_tasks):
        task = _create_task(client)
        _add_file(client, task['id'], 'https://example.com/1.pdf')
        _add_file(client, task['id'], 'https://example.com/2.pdf')

    _add_file(client, waiting['id'], 'https://example.com/1.pdf')
    response = _add_file(client, waiting['id'], 'https://example.com/2.pdf')

    assert response.status_code == 503
    assert response.get_json()['file_count'] == 2
    data = client.get(f"/tasks/{waiting['id']}").get_json()
    assert data['status'] == 'created'
    assert len(data['file_urls']) == 2
    print("✓ Busy append recorded the file without starting")


def test_archive_not_found(client):
    response = client.get('/archives/00000000-0000-0000-0000-000000000000.zip')
    assert response.status_code == 404
    assert response.get_json()['error'] == 'archive not found'
    print("✓ Missing archive is 404")


@pytest.mark.parametrize('path', [
    '/archives/..secret.zip',
    '/archives/sub/archive.zip',
    '/archives/a%5C..%5Cb.zip',
])
def test_archive_unsafe_filename(client, path):
    response = client.get(path)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'invalid filename'
    print(f"✓ {path} rejected")


@pytest.mark.parametrize('filename', ['../etc/passwd', 'a/b.zip', '..', 'x\\y.zip', ''])
def test_filename_guard_before_filesystem(tmp_path, filename):
    manager = FileManager(tmp_path)
    with pytest.raises(ValueError):
        manager.get_file_path(filename)
    assert not manager.file_exists(filename)


def test_unknown_route_and_method(client):
    response = client.get('/nowhere')
    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'error': 'not found'}

    response = client.delete('/tasks')
    assert response.status_code == 405
    assert response.get_json()['error'] == 'method not allowed'
    print("✓ Unmatched routes answer with JSON errors")


def test_in_flight_requests_settle(client):
    in_flight = client.application.config['in_flight']
    _create_task(client)
    client.get('/tasks/nope')

    assert in_flight.active == 0
    assert in_flight.wait_idle(0.1)
    print("✓ Request counter back to zero after handling")

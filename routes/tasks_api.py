"""
Task API Routes Blueprint

Create tasks, append file URLs and poll task status.
"""

import logging
from functools import wraps

from flask import Blueprint, jsonify, current_app

from utils.archive_tasks import TaskNotFoundError
from utils.logging_config import safe_format_exception
from utils.validation import validate_request, AddFileSchema

logger = logging.getLogger(__name__)

# Create blueprint
tasks_api_bp = Blueprint('tasks_api', __name__)

BUSY_MESSAGE = 'server is busy, please try again later'


def _task_store():
    return current_app.config['task_store']


def _not_found(task_id):
    logger.info(f"Task with ID: {task_id} not found")
    return jsonify({'success': False, 'error': 'task not found'}), 404


def require_task(f):
    """Answer 404 for an unknown task id before the request body is looked at"""
    @wraps(f)
    def decorated_function(task_id, *args, **kwargs):
        try:
            _task_store().get_task(task_id)
        except TaskNotFoundError:
            return _not_found(task_id)
        return f(task_id, *args, **kwargs)

    return decorated_function


@tasks_api_bp.route('/tasks', methods=['POST'])
def create_task():
    """
    Create a new archive task

    Returns:
        201 with the task, or 503 when every processing slot is taken
    """
    store = _task_store()
    settings = current_app.config['archiver_settings']

    if settings.reject_new_tasks_when_busy and store.is_busy():
        logger.warning("Server is busy, refusing new task")
        return jsonify({'success': False, 'error': BUSY_MESSAGE}), 503

    try:
        snapshot = store.create_task()
        return jsonify(snapshot.to_dict()), 201

    except Exception as e:
        logger.error(safe_format_exception())
        return jsonify({'success': False, 'error': str(e)}), 500


@tasks_api_bp.route('/tasks/<task_id>/files', methods=['POST'])
@require_task
@validate_request(AddFileSchema)
def add_file(task_id, validated_data):
    """
    Append a file URL to a task

    Request body:
        {"url": "https://example.com/report.pdf"}

    Returns:
        202 accepted (processing may have started),
        503 when processing was due but no slot was free (the file is kept),
        404 for an unknown task, 400 for a malformed body
    """
    try:
        result = _task_store().add_file(task_id, validated_data.url)
    except TaskNotFoundError:
        return _not_found(task_id)
    except Exception as e:
        logger.error(safe_format_exception())
        return jsonify({'success': False, 'error': str(e)}), 500

    if result.busy:
        return jsonify({
            'success': False,
            'error': BUSY_MESSAGE,
            'file_count': result.file_count
        }), 503

    return jsonify({
        'success': True,
        'file_count': result.file_count,
        'processing_started': result.processing_started
    }), 202


@tasks_api_bp.route('/tasks/<task_id>', methods=['GET'])
def get_task_status(task_id):
    """Get the current state of a task"""
    try:
        snapshot = _task_store().get_task(task_id)
    except TaskNotFoundError:
        return _not_found(task_id)

    return jsonify(snapshot.to_dict())

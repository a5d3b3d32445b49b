"""
Archive API Routes Blueprint

Serves finished task archives.
"""

import logging

from flask import Blueprint, jsonify, send_from_directory, current_app

# Create blueprint
archives_api_bp = Blueprint('archives_api', __name__)

logger = logging.getLogger(__name__)


@archives_api_bp.route('/archives/<path:filename>', methods=['GET'])
def download_archive(filename):
    """Download an archive as an attachment"""
    file_manager = current_app.config['file_manager']
    logger.info(f"Archive requested: {filename}")

    try:
        file_path = file_manager.get_file_path(filename)
    except ValueError:
        return jsonify({'success': False, 'error': 'invalid filename'}), 400

    if not file_path.is_file():
        logger.info(f"Archive file {filename} not found")
        return jsonify({'success': False, 'error': 'archive not found'}), 404

    return send_from_directory(
        file_manager.archive_dir,
        filename,
        mimetype='application/zip',
        as_attachment=True,
        download_name=filename
    )

"""
Routes Package

Flask blueprints for the archiver HTTP surface.

Available Blueprints:
- tasks_api_bp: task creation, file submission and status
- archives_api_bp: archive download
"""

from .tasks_api import tasks_api_bp
from .archives_api import archives_api_bp

__all__ = ['tasks_api_bp', 'archives_api_bp']

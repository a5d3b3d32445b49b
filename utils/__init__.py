"""Utils package for the file archiver service"""

from .file_manager import FileManager
from .archive_cleanup import ArchiveCleaner

__all__ = ['FileManager', 'ArchiveCleaner']

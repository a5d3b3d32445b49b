"""File Manager - Safe access to archive files"""

from pathlib import Path
from typing import List

import humanize

ARCHIVE_SUFFIX = '.zip'


class FileManager:
    def __init__(self, archive_dir='archives'):
        self.archive_dir = Path(archive_dir).resolve()

        # Ensure archive directory exists
        self.archive_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def validate_filename(filename: str):
        """Reject names that could leave the archive directory"""
        if not filename or '..' in filename or '/' in filename or '\\' in filename:
            raise ValueError("Invalid filename: path traversal detected")

    def get_file_path(self, filename: str) -> Path:
        """Resolve safe file path within archive directory"""
        # Checked before touching the filesystem
        self.validate_filename(filename)

        file_path = self.archive_dir / filename

        # Verify path is within archive directory
        try:
            file_path.resolve().relative_to(self.archive_dir)
        except ValueError:
            raise ValueError("Invalid filename: path outside archive directory")

        return file_path

    def file_exists(self, filename: str) -> bool:
        """Check if file exists"""
        try:
            return self.get_file_path(filename).is_file()
        except ValueError:
            return False

    def list_archives(self) -> List[Path]:
        """All archive files currently on disk"""
        return sorted(p for p in self.archive_dir.glob(f'*{ARCHIVE_SUFFIX}') if p.is_file())

    @staticmethod
    def format_size(size_bytes: int) -> str:
        """Format file size to human-readable string"""
        return humanize.naturalsize(size_bytes)

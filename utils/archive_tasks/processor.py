"""
Task Processor

Drives one task through download and archive assembly. Files are fetched
one after another in submission order and streamed straight into the task's
zip archive. A failure on one file is recorded and the pass moves on; only a
failure to create or finalize the archive itself aborts the task.
"""

import logging
import posixpath
import warnings
import zipfile
from pathlib import Path
from typing import Optional, Iterable, List
from urllib.parse import urlsplit

import requests

from .extension_filter import is_allowed_extension
from .models import FileOutcome, ProcessingReport
from .task import ArchiveTask

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_ENTRY_NAME = 'download'


def archive_filename(task_id: str) -> str:
    """Name of the archive file produced for a task"""
    return f"{task_id}.zip"


def entry_name_for(url: str) -> str:
    """Archive entry name: the last segment of the URL path"""
    try:
        path = urlsplit(url).path
    except ValueError:
        path = ''
    return posixpath.basename(path.rstrip('/')) or DEFAULT_ENTRY_NAME


class TaskProcessor:
    """
    Builds the archive for a task.

    Args:
        archive_dir: Directory the archives are written to
        allowed_extensions: Lowercase extensions with leading dot
        session: requests.Session used for fetching (one is created if None)
        chunk_size: Bytes per streamed chunk
        download_timeout: Seconds per request, None waits indefinitely
        archive_url_prefix: Public prefix the archive is served under
    """

    def __init__(
        self,
        archive_dir,
        allowed_extensions: Iterable[str],
        session: Optional[requests.Session] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        download_timeout: Optional[float] = None,
        archive_url_prefix: str = '/archives'
    ):
        self.archive_dir = Path(archive_dir)
        self.allowed_extensions = tuple(allowed_extensions)
        self.session = session or requests.Session()
        self.chunk_size = chunk_size
        self.download_timeout = download_timeout
        self.archive_url_prefix = archive_url_prefix.rstrip('/')

    def archive_path(self, task_id: str) -> Path:
        return self.archive_dir / archive_filename(task_id)

    def result_url(self, task_id: str) -> str:
        return f"{self.archive_url_prefix}/{archive_filename(task_id)}"

    def process(self, task: ArchiveTask, urls: List[str]) -> ProcessingReport:
        """
        Run one processing pass.

        The task must already be claimed (status processing); ``urls`` is the
        snapshot returned by the claim.
        """
        report = ProcessingReport(task_id=task.task_id)
        archive_path = self.archive_path(task.task_id)
        logger.info(f"Processing task {task.task_id} ({len(urls)} files)")

        try:
            archive_file = open(archive_path, 'wb')
        except OSError as e:
            report.fatal_error = f"failed to create zip file: {e}"
            logger.error(f"Failed to create zip file for task {task.task_id}: {e}")
            task.mark_error(report.fatal_error)
            return report

        report.archive_path = str(archive_path)
        try:
            with archive_file, zipfile.ZipFile(archive_file, 'w', zipfile.ZIP_DEFLATED) as archive:
                for url in urls:
                    logger.info(f"Processing file {url} for task {task.task_id}")
                    outcome = self._add_file(archive, url)
                    if not outcome.success:
                        logger.warning(outcome.error)
                    report.outcomes.append(outcome)
        except OSError as e:
            # Central directory or final flush could not be written
            report.fatal_error = f"failed to finalize zip file: {e}"
            logger.error(f"Failed to finalize zip file for task {task.task_id}: {e}")
            task.mark_error(report.fatal_error)
            return report

        task.mark_done(self.result_url(task.task_id), report.errors)
        logger.info(
            f"Finished processing task {task.task_id}: "
            f"{report.entries_written} written, {len(report.errors)} failed"
        )
        return report

    def _add_file(self, archive: zipfile.ZipFile, url: str) -> FileOutcome:
        outcome = FileOutcome(url=url)

        if not is_allowed_extension(url, self.allowed_extensions):
            outcome.error = f"file extension not allowed: {url}"
            return outcome

        try:
            response = self.session.get(url, stream=True, timeout=self.download_timeout)
        except requests.RequestException as e:
            outcome.error = f"failed to download file: {url}, error: {e}"
            return outcome

        with response:
            if response.status_code != 200:
                outcome.error = (
                    f"failed to download file: {url}, "
                    f"status: {response.status_code} {response.reason or ''}".rstrip()
                )
                return outcome

            outcome.entry_name = entry_name_for(url)
            try:
                outcome.bytes_written = self._stream_entry(archive, outcome.entry_name, response)
            except (OSError, zipfile.BadZipFile, requests.RequestException) as e:
                outcome.error = f"failed to write to zip entry for {outcome.entry_name}: {e}"

        return outcome

    def _stream_entry(self, archive: zipfile.ZipFile, name: str, response: requests.Response) -> int:
        written = 0
        with warnings.catch_warnings():
            # Same-named entries are allowed; readers resolve a name to the last one written
            warnings.filterwarnings('ignore', message='Duplicate name', category=UserWarning)
            entry = archive.open(name, 'w')
        with entry:
            for chunk in response.iter_content(chunk_size=self.chunk_size):
                if chunk:
                    entry.write(chunk)
                    written += len(chunk)
        return written

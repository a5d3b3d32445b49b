"""File extension allow-list check for submitted URLs"""

import posixpath
from typing import Iterable
from urllib.parse import urlsplit, parse_qs


def url_extension(url: str) -> str:
    """
    Get the lower-cased file extension implied by a URL.

    The path component wins. When the path has no extension, query parameter
    values are scanned and the first value carrying an extension is used,
    e.g. ``https://host/download?file=report.PDF`` gives ``.pdf``.

    Raises:
        ValueError: If the URL cannot be parsed
    """
    parts = urlsplit(url)
    ext = _extension(parts.path)
    if ext:
        return ext

    for values in parse_qs(parts.query, keep_blank_values=True).values():
        for value in values:
            ext = _extension(value)
            if ext:
                return ext

    return ''


def is_allowed_extension(url: str, allowed_extensions: Iterable[str]) -> bool:
    """
    Check whether a URL points at an allowed file type.

    Args:
        url: File URL as submitted
        allowed_extensions: Lowercase extensions with leading dot ('.pdf')

    Returns:
        True on an exact match, False when no extension can be determined,
        none matches, or the URL is malformed
    """
    try:
        ext = url_extension(url)
    except ValueError:
        return False

    if not ext:
        return False

    return any(ext == allowed for allowed in allowed_extensions)


def _extension(path: str) -> str:
    # Suffix from the last dot of the basename, so '.pdf' alone counts
    name = posixpath.basename(path)
    dot = name.rfind('.')
    if dot == -1:
        return ''
    return name[dot:].lower()

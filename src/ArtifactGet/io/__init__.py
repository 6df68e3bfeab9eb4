"""Filesystem helpers for staged trees and archive extraction."""

from .filesystem import (
    ARCHIVE_EXTENSIONS,
    archive_format_for,
    copy_dir,
    extract_archive_safe,
    remove_all,
)

__all__ = [
    "ARCHIVE_EXTENSIONS",
    "archive_format_for",
    "copy_dir",
    "extract_archive_safe",
    "remove_all",
]

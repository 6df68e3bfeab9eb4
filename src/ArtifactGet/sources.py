"""Locator helpers: subdirectory splitting, glob resolution, query editing.

Locators are plain URL strings.  Every helper here returns a new string and
never mutates its input, so callers can hand out working copies freely.
"""

from __future__ import annotations

import glob
import os
from typing import Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .errors import AmbiguousSubdirError, SubdirNotFoundError

__all__ = [
    "source_dir_subdir",
    "subdir_glob",
    "query_value",
    "with_query_param",
    "without_query_param",
]

_GLOB_CHARS = "*?["


def source_dir_subdir(src: str) -> Tuple[str, str]:
    """Split ``src`` into a base locator and an optional ``//`` subdirectory.

    The separator is the first ``//`` after the scheme delimiter and before any
    query string.  A query string trailing the subdirectory belongs to the base
    locator and is moved back onto it.

    Examples:
        >>> source_dir_subdir("https://example.com/real/module.zip//sub/dir")
        ('https://example.com/real/module.zip', 'sub/dir')
        >>> source_dir_subdir("https://example.com/mod//sub?ref=v1")
        ('https://example.com/mod?ref=v1', 'sub')
        >>> source_dir_subdir("https://example.com/plain")
        ('https://example.com/plain', '')
    """

    stop = src.find("?")
    if stop == -1:
        stop = len(src)

    offset = 0
    scheme_idx = src.find("://", 0, stop)
    if scheme_idx > -1:
        offset = scheme_idx + 3

    idx = src.find("//", offset, stop)
    if idx == -1:
        return src, ""

    subdir = src[idx + 2 :]
    base = src[:idx]

    query_idx = subdir.find("?")
    if query_idx > -1:
        base += subdir[query_idx:]
        subdir = subdir[:query_idx]

    return base, subdir


def subdir_glob(root: str, subdir: str) -> str:
    """Resolve ``subdir`` (possibly containing glob segments) under ``root``.

    Patterns without glob metacharacters are joined and returned without
    touching the filesystem.  Patterns with metacharacters must match exactly
    one path.

    Raises:
        SubdirNotFoundError: If the pattern matches nothing.
        AmbiguousSubdirError: If the pattern matches more than one path.
    """

    pattern = os.path.join(root, subdir)
    if not any(char in pattern for char in _GLOB_CHARS):
        return pattern

    matches = sorted(glob.glob(pattern))
    if not matches:
        raise SubdirNotFoundError(f"subdir {subdir!r} not found")
    if len(matches) > 1:
        raise AmbiguousSubdirError(f"subdir {subdir!r} matches multiple paths")
    return matches[0]


def query_value(url: str, key: str) -> Optional[str]:
    """Return the first value of query parameter ``key`` or ``None``."""

    for name, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        if name == key:
            return value
    return None


def with_query_param(url: str, key: str, value: str) -> str:
    """Return a copy of ``url`` with ``key=value`` appended to its query."""

    parts = urlsplit(url)
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    pairs.append((key, value))
    return urlunsplit(parts._replace(query=urlencode(pairs)))


def without_query_param(url: str, key: str) -> str:
    """Return a copy of ``url`` with every ``key`` query parameter removed."""

    parts = urlsplit(url)
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    kept = [(name, value) for name, value in pairs if name != key]
    if len(kept) == len(pairs):
        return url
    return urlunsplit(parts._replace(query=urlencode(kept)))

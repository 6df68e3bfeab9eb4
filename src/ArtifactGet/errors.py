"""Exception hierarchy shared across discovery, transfer, and extraction.

An artifact fetch spans locator handling, the discovery handshake, ranged or
full HTTP transfers, and staging of directory trees on disk.  This module
groups the failure modes into a small hierarchy so callers can react to
high-level categories (protocol violations vs. extraction failures) while still
having access to specialised subclasses when finer-grained handling is needed.

Transport failures (connection resets, timeouts) are deliberately absent: they
surface as the ``httpx.RequestError`` raised by the client, unchanged.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "ArtifactGetError",
    "ConfigurationError",
    "UnsupportedProtocolError",
    "CredentialsError",
    "BadResponseError",
    "DiscoveryError",
    "DiscoveryParseError",
    "UnsupportedCharsetError",
    "InvalidByteRangeError",
    "ExtractionError",
    "SubdirNotFoundError",
    "AmbiguousSubdirError",
    "ArchiveError",
]


class ArtifactGetError(RuntimeError):
    """Base exception for every fatal artifact fetch failure."""


class ConfigurationError(ArtifactGetError):
    """Raised when YAML configuration or environment overrides are invalid."""


class UnsupportedProtocolError(ArtifactGetError):
    """Raised when a locator uses a scheme no registered getter handles."""


class CredentialsError(ArtifactGetError):
    """Raised when the netrc credentials file exists but cannot be parsed."""


class BadResponseError(ArtifactGetError):
    """Raised when a server answers with a status code the protocol forbids."""

    def __init__(self, status_code: int, *, url: Optional[str] = None) -> None:
        super().__init__(f"bad response code: {status_code}")
        self.status_code = status_code
        self.url = url


class DiscoveryError(ArtifactGetError):
    """Raised when the discovery handshake yields no usable source locator."""


class DiscoveryParseError(DiscoveryError):
    """Raised when the discovery response body cannot be scanned."""


class UnsupportedCharsetError(DiscoveryParseError):
    """Raised when a discovery document declares an undecodable charset."""

    def __init__(self, charset: str) -> None:
        super().__init__(f"can't decode discovery document using charset {charset!r}")
        self.charset = charset


class InvalidByteRangeError(ArtifactGetError, ValueError):
    """Raised when a ``ranged_request_bytes`` directive is malformed.

    Callers treat this as recoverable: the transfer proceeds unranged.
    """


class ExtractionError(ArtifactGetError):
    """Raised when a requested subdirectory cannot be promoted from staging."""

    def __init__(self, message: str, *, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.source = source


class SubdirNotFoundError(ExtractionError):
    """Raised when a subdirectory glob matches nothing in the staged tree."""


class AmbiguousSubdirError(ExtractionError):
    """Raised when a subdirectory glob matches more than one path."""


class ArchiveError(ExtractionError):
    """Raised when an archive is unreadable or contains unsafe members."""

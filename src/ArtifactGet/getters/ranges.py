# === NAVMAP v1 ===
# {
#   "module": "ArtifactGet.getters.ranges",
#   "purpose": "Parse ranged_request_bytes directives and probe servers for byte-range support",
#   "sections": [
#     {"id": "byterange", "name": "ByteRange", "anchor": "class-byterange", "kind": "class"},
#     {"id": "parse-byte-range", "name": "parse_byte_range", "anchor": "function-parse-byte-range", "kind": "function"},
#     {"id": "rangenegotiation", "name": "RangeNegotiation", "anchor": "class-rangenegotiation", "kind": "class"},
#     {"id": "negotiate-range", "name": "negotiate_range", "anchor": "function-negotiate-range", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Byte-range directives and partial-content negotiation.

A caller asks for a byte subrange by adding ``ranged_request_bytes=<start>-<end>``
(or ``<start>-`` for "to the end") to a file locator.  Range support is then
confirmed with a HEAD probe:

- directive absent -> full transfer, nothing to report
- directive malformed -> full transfer, a warning is handed back to the caller
- probe fails or ``Accept-Ranges: bytes`` missing -> full transfer, silently
- otherwise the transfer carries ``Range: bytes=<start>-<end>`` and must
  answer ``206 Partial Content``
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from ..errors import InvalidByteRangeError
from ..logging_utils import redact_url
from ..sources import query_value

__all__ = [
    "RANGE_QUERY_PARAM",
    "ByteRange",
    "RangeNegotiation",
    "parse_byte_range",
    "parse_byte_range_directive",
    "server_accepts_ranges",
    "negotiate_range",
]

LOGGER = logging.getLogger("ArtifactGet.getters.ranges")

RANGE_QUERY_PARAM = "ranged_request_bytes"

_INVALID_RANGE_MSG = "Invalid byte range provided"
_INTEGER = re.compile(r"[+-]?[0-9]+")


@dataclass(slots=True, frozen=True)
class ByteRange:
    """Inclusive byte range ``start``..``end``; ``end=None`` reads to EOF."""

    start: int
    end: Optional[int] = None

    def __post_init__(self) -> None:
        if self.start < 0:
            raise InvalidByteRangeError(f"{_INVALID_RANGE_MSG}; start byte must not be negative")
        if self.end is not None and self.end <= self.start:
            raise InvalidByteRangeError(
                f"{_INVALID_RANGE_MSG}; finish byte must be bigger than start byte"
            )

    def header_value(self) -> str:
        """Render the ``Range`` request header value."""

        end = "" if self.end is None else str(self.end)
        return f"bytes={self.start}-{end}"


def _parse_int(value: str) -> Optional[int]:
    if not _INTEGER.fullmatch(value):
        return None
    return int(value, 10)


def parse_byte_range_directive(directive: str) -> ByteRange:
    """Parse a ``<start>-<end>`` or ``<start>-`` directive.

    Raises:
        InvalidByteRangeError: If the directive is not exactly two ``-``
            separated parts, either bound is not a base-10 integer, or the
            end does not exceed the start.

    Examples:
        >>> parse_byte_range_directive("5555-66666")
        ByteRange(start=5555, end=66666)
        >>> parse_byte_range_directive("5555-")
        ByteRange(start=5555, end=None)
    """

    parts = directive.split("-")
    if len(parts) != 2:
        raise InvalidByteRangeError(
            f"{_INVALID_RANGE_MSG}; length of parsed byte range is not 2, {parts}"
        )
    start = _parse_int(parts[0])
    if start is None:
        raise InvalidByteRangeError(
            f"{_INVALID_RANGE_MSG}; could not convert start byte string to an integer"
        )
    if parts[1] == "":
        return ByteRange(start=start)
    finish = _parse_int(parts[1])
    if finish is None:
        raise InvalidByteRangeError(
            f"{_INVALID_RANGE_MSG}; could not convert finish byte string to an integer"
        )
    return ByteRange(start=start, end=finish)


def parse_byte_range(url: str) -> Optional[ByteRange]:
    """Return the range directive carried by ``url``.

    Returns ``None`` when no directive is present (an empty value counts as
    absent).  A present-but-malformed directive raises instead, so "absent"
    and "invalid" never collapse into the same outcome.

    Raises:
        InvalidByteRangeError: If the directive is malformed.
    """

    directive = query_value(url, RANGE_QUERY_PARAM)
    if not directive:
        return None
    return parse_byte_range_directive(directive)


def server_accepts_ranges(client: httpx.Client, url: str) -> bool:
    """Probe ``url`` with HEAD and report whether ``Accept-Ranges: bytes`` is set.

    Any probe failure (transport error, non-2xx status) reports ``False``.
    """

    try:
        response = client.head(url)
    except httpx.HTTPError as exc:
        LOGGER.debug(
            "HEAD request for range failed; falling back to full file download",
            extra={"stage": "range", "url": redact_url(url), "error": str(exc)},
        )
        return False

    if not response.is_success:
        LOGGER.debug(
            "HEAD request for range failed; falling back to full file download",
            extra={"stage": "range", "url": redact_url(url), "status": response.status_code},
        )
        return False

    accept_ranges = response.headers.get("Accept-Ranges", "")
    return accept_ranges.strip().lower() == "bytes"


@dataclass(slots=True, frozen=True)
class RangeNegotiation:
    """Decision of the range negotiator for one transfer.

    Attributes:
        byte_range: Range to send on the wire, ``None`` for a full transfer.
        requested: Range the caller asked for, even if it was abandoned.
        warning: Directive validation message to surface to the caller.
        fallback_reason: Why a requested range was not attempted.
    """

    byte_range: Optional[ByteRange] = None
    requested: Optional[ByteRange] = None
    warning: Optional[str] = None
    fallback_reason: Optional[str] = None

    @property
    def partial(self) -> bool:
        """Whether a partial transfer is being attempted."""

        return self.byte_range is not None

    def request_headers(self) -> Dict[str, str]:
        """Headers to add to the transfer request."""

        if self.byte_range is None:
            return {}
        return {"Range": self.byte_range.header_value()}


def negotiate_range(
    client: httpx.Client, url: str, *, directive_url: Optional[str] = None
) -> RangeNegotiation:
    """Decide whether the transfer of ``url`` should be ranged.

    Args:
        client: HTTP client used for the HEAD probe.
        url: Locator the probe (and later the transfer) is issued against.
        directive_url: Locator to read the directive from; defaults to ``url``.
            Lets callers strip the directive from the wire URL first.

    Returns:
        The negotiation outcome.  Never raises for directive or capability
        problems; those downgrade to a full transfer.
    """

    try:
        requested = parse_byte_range(directive_url or url)
    except InvalidByteRangeError as exc:
        message = f"{exc}; going to disregard range request and download entire file"
        return RangeNegotiation(warning=message, fallback_reason="invalid-directive")

    if requested is None:
        return RangeNegotiation()

    if not server_accepts_ranges(client, url):
        return RangeNegotiation(requested=requested, fallback_reason="ranges-unsupported")

    LOGGER.debug(
        "server accepts byte ranges",
        extra={"stage": "range", "url": redact_url(url), "range": requested.header_value()},
    )
    return RangeNegotiation(byte_range=requested, requested=requested)

# === NAVMAP v1 ===
# {
#   "module": "ArtifactGet.getters.discovery",
#   "purpose": "Resolve the true source of a directory locator via header or meta-tag discovery",
#   "sections": [
#     {"id": "scanstate", "name": "ScanState", "anchor": "class-scanstate", "kind": "class"},
#     {"id": "metatagscanner", "name": "MetaTagScanner", "anchor": "class-metatagscanner", "kind": "class"},
#     {"id": "scan-for-source", "name": "scan_for_source", "anchor": "function-scan-for-source", "kind": "function"},
#     {"id": "discover-source", "name": "discover_source", "anchor": "function-discover-source", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Directory discovery handshake.

A directory locator is fetched with ``terraform-get=1`` appended to its query.
The server answers 2xx and names the real source either in the
``X-Terraform-Get`` response header or in a
``<meta name="terraform-get" content="...">`` tag inside the document head.
The header always wins; the body is only scanned when the header is absent.

Body scanning is a small state machine on top of the tolerant
:class:`html.parser.HTMLParser` tokenizer::

    SCANNING_HEAD --meta match--> FOUND
    SCANNING_HEAD --<body> or </head>--> STOPPED

Once the scanner leaves ``SCANNING_HEAD`` no further input is read.
"""

from __future__ import annotations

import codecs
import enum
import logging
import re
from html.parser import HTMLParser
from typing import Iterable, List, Optional, Tuple

import httpx

from ..errors import BadResponseError, DiscoveryError, UnsupportedCharsetError
from ..logging_utils import redact_url
from ..sources import with_query_param

__all__ = [
    "DISCOVERY_QUERY_PARAM",
    "DISCOVERY_HEADER",
    "DISCOVERY_META_NAME",
    "ScanState",
    "MetaTagScanner",
    "check_charset",
    "scan_for_source",
    "parse_meta",
    "discover_source",
]

LOGGER = logging.getLogger("ArtifactGet.getters.discovery")

DISCOVERY_QUERY_PARAM = "terraform-get"
DISCOVERY_HEADER = "X-Terraform-Get"
DISCOVERY_META_NAME = "terraform-get"

# ASCII is decoded as UTF-8 so bytes above 0x7f are not rejected.
_SUPPORTED_CHARSETS = frozenset({"utf-8", "utf8", "ascii", "us-ascii"})
_XML_ENCODING = re.compile(r"""encoding\s*=\s*["']([^"']+)["']""", re.IGNORECASE)


def check_charset(charset: str) -> None:
    """Raise :class:`UnsupportedCharsetError` unless ``charset`` is UTF-8 or ASCII."""

    if charset.strip().lower() not in _SUPPORTED_CHARSETS:
        raise UnsupportedCharsetError(charset)


class ScanState(enum.Enum):
    """States of the discovery meta-tag scanner."""

    SCANNING_HEAD = "scanning-head"
    FOUND = "found"
    STOPPED = "stopped"


class MetaTagScanner(HTMLParser):
    """Find the first discovery ``<meta>`` tag before the document body.

    Tag and attribute names are matched case-insensitively (the tokenizer
    lowercases them); the ``name`` attribute value must equal ``keyword``
    exactly.  A matching tag with an empty ``content`` is skipped.
    """

    def __init__(self, keyword: str = DISCOVERY_META_NAME) -> None:
        super().__init__(convert_charrefs=True)
        self.keyword = keyword
        self.state = ScanState.SCANNING_HEAD
        self.source: Optional[str] = None

    @property
    def done(self) -> bool:
        """Whether the scan reached a terminal state."""
        return self.state is not ScanState.SCANNING_HEAD

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        if self.done:
            return
        if tag == "body":
            self.state = ScanState.STOPPED
            return
        if tag != "meta":
            return

        values = {}
        for name, value in attrs:
            values.setdefault(name, value)
        if values.get("name") != self.keyword:
            return
        content = values.get("content") or ""
        if content:
            self.source = content
            self.state = ScanState.FOUND

    def handle_endtag(self, tag: str) -> None:
        if not self.done and tag == "head":
            self.state = ScanState.STOPPED

    def handle_pi(self, data: str) -> None:
        # <?xml version="1.0" encoding="..."?>
        if self.done or not data.lower().startswith("xml"):
            return
        match = _XML_ENCODING.search(data)
        if match:
            check_charset(match.group(1))


def scan_for_source(chunks: Iterable[bytes], keyword: str = DISCOVERY_META_NAME) -> Optional[str]:
    """Feed ``chunks`` to a :class:`MetaTagScanner` until it reaches a verdict.

    Returns:
        The ``content`` of the first matching meta tag, or ``None`` when the
        head ends (or the input runs out) without one.

    Raises:
        UnsupportedCharsetError: If an XML declaration names another charset.
    """

    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    scanner = MetaTagScanner(keyword)
    for chunk in chunks:
        scanner.feed(decoder.decode(chunk))
        if scanner.done:
            return scanner.source
    scanner.feed(decoder.decode(b"", final=True))
    scanner.close()
    return scanner.source


def parse_meta(response: httpx.Response, keyword: str = DISCOVERY_META_NAME) -> Optional[str]:
    """Scan a streamed discovery ``response`` body for the discovery meta tag.

    The body is always decoded as UTF-8. A ``Content-Type`` charset is not
    consulted; only an in-document ``<?xml encoding=...?>`` declaration is.

    Raises:
        UnsupportedCharsetError: If the XML declaration names a charset other
            than UTF-8 or ASCII.
    """

    return scan_for_source(response.iter_bytes(), keyword)


def discover_source(client: httpx.Client, url: str) -> str:
    """Run the discovery handshake against ``url`` and return the real source.

    Args:
        client: HTTP client used for the discovery request.
        url: Directory locator (already carrying any credentials).

    Returns:
        The resolved source locator, verbatim.

    Raises:
        BadResponseError: If the discovery response is not 2xx.
        UnsupportedCharsetError: If the body uses an unsupported charset.
        DiscoveryError: If neither the header nor the body names a source.
        httpx.RequestError: On transport failures.
    """

    discovery_url = with_query_param(url, DISCOVERY_QUERY_PARAM, "1")
    with client.stream("GET", discovery_url) as response:
        if not response.is_success:
            raise BadResponseError(response.status_code, url=redact_url(discovery_url))

        channel = "header"
        source = response.headers.get(DISCOVERY_HEADER, "")
        if not source:
            channel = "meta"
            source = parse_meta(response) or ""

    if not source:
        raise DiscoveryError(f"no source URL was returned by {redact_url(url)}")

    LOGGER.info(
        "discovered source",
        extra={
            "stage": "discovery",
            "url": redact_url(url),
            "source": redact_url(source),
            "channel": channel,
        },
    )
    return source

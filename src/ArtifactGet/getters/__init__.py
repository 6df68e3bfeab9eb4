"""Protocol getters and their negotiation helpers."""

from .base import ClientMode, DirectoryFetchResult, DispatchFn, FileFetchResult, Getter
from .discovery import DISCOVERY_HEADER, DISCOVERY_QUERY_PARAM, MetaTagScanner, discover_source
from .http import HttpGetter
from .ranges import RANGE_QUERY_PARAM, ByteRange, RangeNegotiation, negotiate_range
from .subdir import fetch_subdir

__all__ = [
    "ByteRange",
    "ClientMode",
    "DISCOVERY_HEADER",
    "DISCOVERY_QUERY_PARAM",
    "DirectoryFetchResult",
    "DispatchFn",
    "FileFetchResult",
    "Getter",
    "HttpGetter",
    "MetaTagScanner",
    "RANGE_QUERY_PARAM",
    "RangeNegotiation",
    "discover_source",
    "fetch_subdir",
    "negotiate_range",
]

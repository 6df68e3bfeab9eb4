# === NAVMAP v1 ===
# {
#   "module": "ArtifactGet.getters.http",
#   "purpose": "HTTP(S) getter: mode classification, discovery-driven directory fetches, file transfers",
#   "sections": [
#     {"id": "httpgetter", "name": "HttpGetter", "anchor": "class-httpgetter", "kind": "class"},
#     {"id": "stream-to-file", "name": "_stream_to_file", "anchor": "function-stream-to-file", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""HTTP(S) getter.

Directory fetches run the discovery handshake (``terraform-get=1``) and hand
the resolved source back to the injected dispatcher, staging it first when the
source names a ``//subdir``.  File fetches negotiate an optional byte range
and stream the payload to disk.

Every fetch works on a copy of the caller's locator; credentials and
directive stripping never leak back into the caller's string.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from types import TracebackType
from typing import Optional, Type
from urllib.parse import urlsplit

import httpx

from ..auth import add_auth_from_netrc
from ..errors import BadResponseError, ConfigurationError
from ..logging_utils import redact_url
from ..net import build_http_client
from ..settings import GetterSettings
from ..sources import source_dir_subdir, without_query_param
from .base import ClientMode, DirectoryFetchResult, DispatchFn, FileFetchResult, PathLike
from .discovery import discover_source
from .ranges import RANGE_QUERY_PARAM, negotiate_range
from .subdir import fetch_subdir

__all__ = ["HttpGetter"]

LOGGER = logging.getLogger("ArtifactGet.getters.http")

_CHUNK_SIZE = 1 << 16


def _stream_to_file(response: httpx.Response, destination: Path) -> int:
    """Write ``response`` to ``destination`` through a sibling ``.part`` file.

    The ``.part`` file is removed on any failure; ``destination`` is only
    replaced once the whole payload is on disk.
    """

    part_path = destination.with_name(destination.name + ".part")
    written = 0
    try:
        with part_path.open("wb") as stream:
            for chunk in response.iter_bytes(_CHUNK_SIZE):
                if not chunk:
                    continue
                stream.write(chunk)
                written += len(chunk)
        os.replace(part_path, destination)
    except (httpx.HTTPError, OSError):
        part_path.unlink(missing_ok=True)
        raise
    return written


class HttpGetter:
    """Getter for ``http`` and ``https`` locators.

    Args:
        client: HTTP client to use.  When omitted a client is built from
            ``settings`` and closed by :meth:`close`; injected clients are
            never closed here.
        settings: Getter settings; defaults apply when omitted.
        dispatch: Recursive fetch strategy for resolved directory sources.
        netrc: Override ``settings.netrc`` for credential augmentation.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        settings: Optional[GetterSettings] = None,
        dispatch: Optional[DispatchFn] = None,
        netrc: Optional[bool] = None,
    ) -> None:
        self.settings = settings or GetterSettings()
        self._owns_client = client is None
        self.client = client if client is not None else build_http_client(self.settings.http)
        self.dispatch = dispatch
        self.netrc = self.settings.netrc if netrc is None else netrc

    # --- Lifecycle -------------------------------------------------------------

    def close(self) -> None:
        """Close the HTTP client if this getter created it."""

        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "HttpGetter":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    # --- Getter protocol -------------------------------------------------------

    def client_mode(self, url: str) -> ClientMode:
        """Return ``DIR`` when the URL path ends with ``/``, else ``FILE``."""

        if urlsplit(url).path.endswith("/"):
            return ClientMode.DIR
        return ClientMode.FILE

    def _working_copy(self, url: str) -> str:
        if self.netrc:
            return add_auth_from_netrc(url)
        return url

    def get(self, dst: PathLike, url: str) -> DirectoryFetchResult:
        """Fetch the directory addressed by ``url`` into ``dst``.

        Raises:
            ConfigurationError: If no dispatch strategy was injected.
            BadResponseError: If the discovery response is not 2xx.
            DiscoveryError: If no source could be resolved.
            ExtractionError: If a ``//subdir`` cannot be promoted.
        """

        if self.dispatch is None:
            raise ConfigurationError("HttpGetter.get requires a dispatch strategy")

        source = discover_source(self.client, self._working_copy(url))
        base, subdir = source_dir_subdir(source)
        destination = Path(dst)
        if not subdir:
            self.dispatch(destination, base)
        else:
            fetch_subdir(
                self.dispatch,
                destination,
                base,
                subdir,
                staging_dir=self.settings.staging_dir,
            )
        return DirectoryFetchResult(destination=destination, source=base, subdir=subdir)

    def get_file(self, dst: PathLike, url: str) -> FileFetchResult:
        """Fetch the single file addressed by ``url`` into ``dst``.

        A ``ranged_request_bytes`` directive is honoured only when the server
        advertises ``Accept-Ranges: bytes``; a malformed directive is reported
        in :attr:`FileFetchResult.warnings` and the whole file is fetched.

        Raises:
            BadResponseError: If the response is neither 200 nor, for a ranged
                transfer, 206.
            httpx.RequestError: On transport failures.
        """

        destination = Path(dst)
        working = self._working_copy(url)
        wire_url = without_query_param(working, RANGE_QUERY_PARAM)
        negotiation = negotiate_range(self.client, wire_url, directive_url=working)

        with self.client.stream(
            "GET", wire_url, headers=negotiation.request_headers()
        ) as response:
            # Servers may ignore Range and answer 200 with the whole body.
            partial = negotiation.partial and response.status_code == 206
            if response.status_code != 200 and not partial:
                raise BadResponseError(response.status_code, url=redact_url(wire_url))
            destination.parent.mkdir(parents=True, exist_ok=True)
            written = _stream_to_file(response, destination)

        LOGGER.info(
            "fetched file",
            extra={
                "stage": "transfer",
                "url": redact_url(wire_url),
                "status": response.status_code,
                "destination": str(destination),
                "bytes": written,
                "range": negotiation.byte_range.header_value() if negotiation.byte_range else None,
            },
        )
        warnings = (negotiation.warning,) if negotiation.warning else ()
        return FileFetchResult(
            path=destination,
            status_code=response.status_code,
            partial=partial,
            byte_range=negotiation.byte_range,
            warnings=warnings,
        )

# === NAVMAP v1 ===
# {
#   "module": "ArtifactGet.dispatch",
#   "purpose": "Route locators to protocol getters, handling subdirectories and archives",
#   "sections": [
#     {"id": "dispatcher", "name": "Dispatcher", "anchor": "class-dispatcher", "kind": "class"},
#     {"id": "fetch", "name": "fetch", "anchor": "function-fetch", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Multi-protocol entry point.

The :class:`Dispatcher` owns a scheme registry (``http`` and ``https`` map to
:class:`~ArtifactGet.getters.http.HttpGetter`) and is itself the recursive
dispatch strategy injected into those getters.  On top of the getters it adds:

- ``<base>//<subdir>`` locators, staged with the Subdir Extractor
- archive locators (``.zip``, ``.tar.gz``... or ``archive=<format>``), fetched
  as a file into staging and unpacked into the destination
- ``ClientMode.ANY`` requests, where the getter classifies the locator
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from types import TracebackType
from typing import Mapping, Optional, Tuple, Type, Union
from urllib.parse import urlsplit

import httpx

from .errors import UnsupportedProtocolError
from .getters.base import (
    ClientMode,
    DirectoryFetchResult,
    FileFetchResult,
    Getter,
    PathLike,
)
from .getters.http import HttpGetter
from .getters.subdir import STAGING_PREFIX, fetch_subdir
from .io import archive_format_for, extract_archive_safe
from .logging_utils import redact_url
from .net import build_http_client
from .settings import GetterSettings
from .sources import query_value, source_dir_subdir, without_query_param

__all__ = ["ARCHIVE_QUERY_PARAM", "Dispatcher", "FetchResult", "fetch"]

LOGGER = logging.getLogger("ArtifactGet.dispatch")

ARCHIVE_QUERY_PARAM = "archive"

FetchResult = Union[FileFetchResult, DirectoryFetchResult]


class Dispatcher:
    """Fetch any supported locator into a destination path.

    Args:
        client: Shared HTTP client; built from ``settings`` when omitted and
            then closed by :meth:`close`.
        settings: Getter settings shared with the default getters.
        getters: Scheme to getter mapping replacing the default registry.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        settings: Optional[GetterSettings] = None,
        getters: Optional[Mapping[str, Getter]] = None,
    ) -> None:
        self.settings = settings or GetterSettings()
        self._owns_client = client is None
        self.client = client if client is not None else build_http_client(self.settings.http)
        if getters is None:
            http_getter = HttpGetter(self.client, settings=self.settings, dispatch=self.get)
            getters = {"http": http_getter, "https": http_getter}
        self.getters = {scheme.lower(): getter for scheme, getter in getters.items()}

    def close(self) -> None:
        """Close the HTTP client if this dispatcher created it."""

        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    # --- Helpers ---------------------------------------------------------------

    def getter_for(self, src: str) -> Getter:
        """Return the getter registered for the scheme of ``src``.

        Raises:
            UnsupportedProtocolError: If no getter handles the scheme.
        """

        scheme = urlsplit(src).scheme.lower()
        getter = self.getters.get(scheme)
        if getter is None:
            raise UnsupportedProtocolError(
                f"download not supported for scheme {scheme or '<none>'!r}: {redact_url(src)}"
            )
        return getter

    @staticmethod
    def archive_format(src: str) -> Tuple[Optional[str], str]:
        """Return ``(format, locator)`` for an archive locator.

        ``archive=<format>`` overrides suffix detection and ``archive=false``
        disables it; the parameter is stripped from the returned locator.
        """

        explicit = query_value(src, ARCHIVE_QUERY_PARAM)
        if explicit is not None:
            stripped = without_query_param(src, ARCHIVE_QUERY_PARAM)
            if explicit.lower() in ("", "false"):
                return None, stripped
            return explicit.lower(), stripped
        return archive_format_for(urlsplit(src).path), src

    def _report(self, result: FileFetchResult) -> None:
        for warning in result.warnings:
            LOGGER.warning(warning, extra={"stage": "range", "destination": str(result.path)})

    def _fetch_archive(
        self, getter: Getter, destination: Path, src: str, archive_format: str
    ) -> None:
        staging_dir = self.settings.staging_dir
        if staging_dir is not None:
            staging_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix=STAGING_PREFIX, dir=staging_dir) as staging:
            archive_path = Path(staging) / f"archive.{archive_format}"
            self._report(getter.get_file(archive_path, src))
            extract_archive_safe(
                archive_path,
                destination,
                archive_format=archive_format,
                logger=LOGGER,
            )

    # --- Public API ------------------------------------------------------------

    def get(self, dst: PathLike, src: str) -> DirectoryFetchResult:
        """Fetch the directory tree addressed by ``src`` into ``dst``."""

        destination = Path(dst)
        base, subdir = source_dir_subdir(src)
        if subdir:
            LOGGER.debug(
                "staging subdirectory fetch",
                extra={"stage": "dispatch", "url": redact_url(base), "subdir": subdir},
            )
            fetch_subdir(self.get, destination, base, subdir, staging_dir=self.settings.staging_dir)
            return DirectoryFetchResult(destination=destination, source=base, subdir=subdir)

        getter = self.getter_for(base)
        archive_format, locator = self.archive_format(base)
        if archive_format:
            LOGGER.debug(
                "fetching archive",
                extra={"stage": "dispatch", "url": redact_url(locator), "format": archive_format},
            )
            self._fetch_archive(getter, destination, locator, archive_format)
            return DirectoryFetchResult(destination=destination, source=locator)
        return getter.get(destination, locator)

    def get_file(self, dst: PathLike, src: str) -> FileFetchResult:
        """Fetch the single file addressed by ``src`` into ``dst``."""

        result = self.getter_for(src).get_file(Path(dst), src)
        self._report(result)
        return result

    def get_any(self, dst: PathLike, src: str) -> FetchResult:
        """Fetch ``src`` letting archives, subdirectories, or the getter pick the mode."""

        base, subdir = source_dir_subdir(src)
        if subdir or self.archive_format(base)[0]:
            return self.get(dst, src)
        if self.getter_for(src).client_mode(src) is ClientMode.DIR:
            return self.get(dst, src)
        return self.get_file(dst, src)

    def fetch(self, dst: PathLike, src: str, mode: ClientMode = ClientMode.ANY) -> FetchResult:
        """Fetch ``src`` into ``dst`` using an explicit :class:`ClientMode`."""

        if mode is ClientMode.FILE:
            return self.get_file(dst, src)
        if mode is ClientMode.DIR:
            return self.get(dst, src)
        return self.get_any(dst, src)


def fetch(
    dst: PathLike,
    src: str,
    *,
    mode: ClientMode = ClientMode.ANY,
    settings: Optional[GetterSettings] = None,
    client: Optional[httpx.Client] = None,
) -> FetchResult:
    """Fetch ``src`` into ``dst`` with a short-lived :class:`Dispatcher`."""

    with Dispatcher(client, settings=settings) as dispatcher:
        return dispatcher.fetch(dst, src, mode)

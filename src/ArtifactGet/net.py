# === NAVMAP v1 ===
# {
#   "module": "ArtifactGet.net",
#   "purpose": "Build HTTPX clients for getters from HttpSettings",
#   "sections": [
#     {"id": "helpers", "name": "Client construction helpers", "anchor": "HELP", "kind": "helpers"},
#     {"id": "api", "name": "Public API", "anchor": "API", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""HTTPX client construction for artifact getters.

There is no process-wide client: every getter receives one at construction
time, either injected by the caller or built here from :class:`HttpSettings`.
"""

from __future__ import annotations

import logging
import ssl
import time
from typing import Optional

import certifi
import httpx

from .logging_utils import redact_url
from .settings import HttpSettings

LOGGER = logging.getLogger("ArtifactGet.net")

__all__ = ["build_http_client"]

# --- Client construction helpers ----------------------------------------------


def _build_ssl_context(verify: bool) -> ssl.SSLContext:
    if not verify:
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        LOGGER.warning("TLS verification DISABLED", extra={"stage": "config"})
        return context
    return ssl.create_default_context(cafile=certifi.where())


def _timeout_for(settings: HttpSettings) -> httpx.Timeout:
    return httpx.Timeout(
        connect=settings.timeout_connect,
        read=settings.timeout_read,
        write=settings.timeout_write,
        pool=settings.timeout_pool,
    )


def _limits_for(settings: HttpSettings) -> httpx.Limits:
    return httpx.Limits(
        max_connections=settings.max_connections,
        max_keepalive_connections=settings.max_keepalive_connections,
        keepalive_expiry=settings.keepalive_expiry,
    )


def _request_hook(request: httpx.Request) -> None:
    request.extensions["artifactget_start"] = time.perf_counter()
    LOGGER.debug(
        "http-request",
        extra={"stage": "http", "url": redact_url(str(request.url)), "method": request.method},
    )


def _response_hook(response: httpx.Response) -> None:
    start = response.request.extensions.get("artifactget_start")
    elapsed_ms = None
    if isinstance(start, (int, float)):
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
    LOGGER.debug(
        "http-response",
        extra={
            "stage": "http",
            "url": redact_url(str(response.request.url)),
            "status": response.status_code,
            "elapsed_ms": elapsed_ms,
        },
    )


# --- Public API ----------------------------------------------------------------


def build_http_client(
    settings: Optional[HttpSettings] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Return a new :class:`httpx.Client` configured from ``settings``.

    Args:
        settings: HTTP settings; defaults apply when omitted.
        transport: Optional transport override (``httpx.MockTransport`` in tests).

    Returns:
        A client the caller owns and must close.
    """

    cfg = settings or HttpSettings()
    return httpx.Client(
        transport=transport,
        timeout=_timeout_for(cfg),
        limits=_limits_for(cfg),
        verify=_build_ssl_context(cfg.verify_tls),
        trust_env=cfg.trust_env,
        follow_redirects=cfg.follow_redirects,
        max_redirects=cfg.max_redirects,
        headers={"User-Agent": cfg.user_agent},
        event_hooks={"request": [_request_hook], "response": [_response_hook]},
    )

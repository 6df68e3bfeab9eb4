# === NAVMAP v1 ===
# {
#   "module": "ArtifactGet",
#   "purpose": "Package initialization for ArtifactGet",
#   "sections": [
#     {"id": "getattr", "name": "__getattr__", "anchor": "function-getattr", "kind": "function"},
#     {"id": "dir", "name": "__dir__", "anchor": "function-dir", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Public API for the ArtifactGet HTTP(S) artifact getter.

This facade exposes the dispatcher and getter used to fetch single files
(optionally byte-ranged) and whole directory trees resolved through the
``terraform-get`` discovery handshake, plus the settings and error types
callers need around them.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any, Dict, Tuple

__version__ = "0.1.0"

_EXPORTS: Dict[str, Tuple[str, str]] = {
    "ArtifactGetError": (".errors", "ArtifactGetError"),
    "BadResponseError": (".errors", "BadResponseError"),
    "ByteRange": (".getters.ranges", "ByteRange"),
    "ClientMode": (".getters.base", "ClientMode"),
    "DirectoryFetchResult": (".getters.base", "DirectoryFetchResult"),
    "DiscoveryError": (".errors", "DiscoveryError"),
    "Dispatcher": (".dispatch", "Dispatcher"),
    "ExtractionError": (".errors", "ExtractionError"),
    "FileFetchResult": (".getters.base", "FileFetchResult"),
    "GetterSettings": (".settings", "GetterSettings"),
    "HttpGetter": (".getters.http", "HttpGetter"),
    "fetch": (".dispatch", "fetch"),
    "load_settings": (".settings", "load_settings"),
    "setup_logging": (".logging_utils", "setup_logging"),
}

__all__ = [*sorted(_EXPORTS), "__version__"]

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .dispatch import Dispatcher, fetch
    from .errors import (
        ArtifactGetError,
        BadResponseError,
        DiscoveryError,
        ExtractionError,
    )
    from .getters.base import ClientMode, DirectoryFetchResult, FileFetchResult
    from .getters.http import HttpGetter
    from .getters.ranges import ByteRange
    from .logging_utils import setup_logging
    from .settings import GetterSettings, load_settings


def __getattr__(name: str) -> Any:
    """Lazily import API exports so ``--version`` stays cheap."""

    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    module = import_module(target[0], __name__)
    value = getattr(module, target[1])
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    """Expose lazily-populated attributes in ``dir()`` results."""

    return sorted(set(globals()) | set(__all__))

"""Shared types for getters: client modes, protocols, and result records."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Protocol, Tuple, Union

from .ranges import ByteRange

__all__ = [
    "ClientMode",
    "DispatchFn",
    "PathLike",
    "Getter",
    "FileFetchResult",
    "DirectoryFetchResult",
]

PathLike = Union[str, Path]

# Recursive generic fetch used by getters for directory sources.
DispatchFn = Callable[[PathLike, str], object]


class ClientMode(str, enum.Enum):
    """Whether a locator addresses a single file or a directory tree."""

    ANY = "any"
    FILE = "file"
    DIR = "dir"


@dataclass(slots=True, frozen=True)
class FileFetchResult:
    """Outcome of a single-file transfer.

    Attributes:
        path: Destination file written by the transfer.
        status_code: HTTP status of the transfer response (200 or 206).
        partial: ``True`` when a ranged transfer was negotiated.
        byte_range: Range requested on the wire, ``None`` for full transfers.
        warnings: Recoverable diagnostics, e.g. a rejected range directive.
    """

    path: Path
    status_code: int
    partial: bool = False
    byte_range: Optional[ByteRange] = None
    warnings: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True)
class DirectoryFetchResult:
    """Outcome of a directory fetch driven by the discovery handshake."""

    destination: Path
    source: str
    subdir: str = ""


class Getter(Protocol):
    """Protocol implemented by protocol-specific getters."""

    def client_mode(self, url: str) -> ClientMode:  # pragma: no cover - protocol
        """Classify ``url`` as a file or directory locator."""

    def get(self, dst: PathLike, url: str) -> DirectoryFetchResult:  # pragma: no cover - protocol
        """Fetch the directory addressed by ``url`` into ``dst``."""

    def get_file(self, dst: PathLike, url: str) -> FileFetchResult:  # pragma: no cover - protocol
        """Fetch the single file addressed by ``url`` into ``dst``."""

# === NAVMAP v1 ===
# {
#   "module": "ArtifactGet.io.filesystem",
#   "purpose": "Filesystem helpers for tree copies, removal, and safe archive extraction",
#   "sections": [
#     {"id": "trees", "name": "Tree Copy & Removal", "anchor": "TRE", "kind": "helpers"},
#     {"id": "archives", "name": "Archive Extraction Utilities", "anchor": "ARC", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Filesystem helpers for fetched artifacts.

Responsibilities include replacing destinations wholesale, copying staged
trees without following symbolic links, and extracting archives while refusing
members that would escape the destination directory.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import zipfile
from pathlib import Path, PurePosixPath
from typing import List, Optional, Union

from ..errors import ArchiveError

__all__ = [
    "ARCHIVE_EXTENSIONS",
    "archive_format_for",
    "copy_dir",
    "extract_archive_safe",
    "remove_all",
]

PathLike = Union[str, "os.PathLike[str]"]

LOGGER = logging.getLogger("ArtifactGet.io")

# Longest suffixes first so ``.tar.gz`` wins over ``.gz``-style matches.
ARCHIVE_EXTENSIONS = {
    ".tar.bz2": "tar.bz2",
    ".tar.gz": "tar.gz",
    ".tar.xz": "tar.xz",
    ".tbz2": "tar.bz2",
    ".tgz": "tar.gz",
    ".txz": "tar.xz",
    ".tar": "tar",
    ".zip": "zip",
}

_TAR_MODES = {
    "tar": "r:",
    "tar.gz": "r:gz",
    "tgz": "r:gz",
    "tar.bz2": "r:bz2",
    "tbz2": "r:bz2",
    "tar.xz": "r:xz",
    "txz": "r:xz",
}


def archive_format_for(path: str) -> Optional[str]:
    """Return the archive format implied by the suffix of ``path``, if any."""

    lowered = path.lower()
    for suffix in sorted(ARCHIVE_EXTENSIONS, key=len, reverse=True):
        if lowered.endswith(suffix):
            return ARCHIVE_EXTENSIONS[suffix]
    return None


def remove_all(path: PathLike) -> None:
    """Remove ``path`` whether it is a file, a link, or a tree; missing is fine."""

    target = Path(path)
    if target.is_symlink() or target.is_file():
        target.unlink()
    elif target.is_dir():
        shutil.rmtree(target)


def copy_dir(
    dst: PathLike,
    src: PathLike,
    *,
    follow_symlinks: bool = False,
    ignore_dot: bool = False,
) -> None:
    """Copy the contents of directory ``src`` into directory ``dst``.

    Args:
        dst: Destination directory; created if missing, merged into if present.
        src: Source directory whose children are copied.
        follow_symlinks: When ``False`` symbolic links are recreated as links
            rather than copied through to their targets.
        ignore_dot: Skip dot-prefixed files and directories.
    """

    ignore = shutil.ignore_patterns(".*") if ignore_dot else None
    shutil.copytree(
        src,
        dst,
        symlinks=not follow_symlinks,
        ignore=ignore,
        dirs_exist_ok=True,
    )


def _validate_member_path(member_name: str) -> PurePosixPath:
    """Validate archive member paths to prevent traversal attacks."""

    normalized = member_name.replace("\\", "/")
    relative = PurePosixPath(normalized)
    if relative.is_absolute():
        raise ArchiveError(f"Unsafe absolute path detected in archive: {member_name}")
    if any(part == ".." for part in relative.parts):
        raise ArchiveError(f"Unsafe path detected in archive: {member_name}")
    return relative


def _extract_zip(archive_path: Path, destination: Path) -> List[Path]:
    extracted: List[Path] = []
    try:
        with zipfile.ZipFile(archive_path) as archive:
            for member in archive.infolist():
                relative = _validate_member_path(member.filename)
                if not relative.parts:
                    continue
                target_path = destination.joinpath(*relative.parts)
                if member.is_dir():
                    target_path.mkdir(parents=True, exist_ok=True)
                    continue
                target_path.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(member, "r") as source, target_path.open("wb") as target:
                    shutil.copyfileobj(source, target)
                extracted.append(target_path)
    except zipfile.BadZipFile as exc:
        raise ArchiveError(f"Unreadable zip archive {archive_path}: {exc}") from exc
    return extracted


def _extract_tar(archive_path: Path, destination: Path, mode: str) -> List[Path]:
    extracted: List[Path] = []
    root = destination.resolve()
    try:
        with tarfile.open(archive_path, mode) as archive:
            for member in archive.getmembers():
                relative = _validate_member_path(member.name)
                if not relative.parts:
                    continue
                if member.isdev() or member.isfifo():
                    raise ArchiveError(f"Unsupported special file in archive: {member.name}")
                target_path = destination.joinpath(*relative.parts)
                if member.isdir():
                    target_path.mkdir(parents=True, exist_ok=True)
                    continue
                target_path.parent.mkdir(parents=True, exist_ok=True)
                if member.issym() or member.islnk():
                    link_base = target_path.parent if member.issym() else destination
                    resolved = (link_base / member.linkname).resolve()
                    if resolved != root and root not in resolved.parents:
                        raise ArchiveError(f"Link escapes destination in archive: {member.name}")
                    if member.issym():
                        target_path.symlink_to(member.linkname)
                    else:
                        shutil.copy2(resolved, target_path)
                    extracted.append(target_path)
                    continue
                source = archive.extractfile(member)
                if source is None:
                    continue
                with source, target_path.open("wb") as target:
                    shutil.copyfileobj(source, target)
                os.chmod(target_path, member.mode & 0o777 or 0o644)
                extracted.append(target_path)
    except tarfile.TarError as exc:
        raise ArchiveError(f"Unreadable tar archive {archive_path}: {exc}") from exc
    return extracted


def extract_archive_safe(
    archive_path: Path,
    destination: Path,
    *,
    archive_format: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> List[Path]:
    """Extract ``archive_path`` into ``destination`` while preventing traversal.

    Args:
        archive_path: Archive file on disk.
        destination: Directory receiving the members; created when missing.
        archive_format: Explicit format (``zip``, ``tar``, ``tar.gz``...);
            inferred from the archive suffix when omitted.
        logger: Optional logger for extraction telemetry.

    Returns:
        Paths of the extracted regular files and links.

    Raises:
        ArchiveError: If the format is unknown, the archive is unreadable, or
            a member would land outside ``destination``.
    """

    fmt = (archive_format or archive_format_for(archive_path.name) or "").lower()
    if not archive_path.exists():
        raise ArchiveError(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)
    if fmt == "zip":
        extracted = _extract_zip(archive_path, destination)
    elif fmt in _TAR_MODES:
        extracted = _extract_tar(archive_path, destination, _TAR_MODES[fmt])
    else:
        raise ArchiveError(f"Unsupported archive format {fmt or '<unknown>'!r} for {archive_path}")

    (logger or LOGGER).info(
        "extracted archive",
        extra={
            "stage": "extract",
            "source": str(archive_path),
            "destination": str(destination),
            "files": len(extracted),
        },
    )
    return extracted

"""Stage a full fetch and promote one subdirectory of it to the destination.

Directory sources of the form ``<base>//<subdir>`` are fetched in two steps.
The base is fetched into a private staging directory (always under a nested
``data`` directory, because some getters refuse to write into an existing
empty root), then the requested subtree replaces the destination.  The staging
directory is removed on every exit path.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional

from ..errors import ExtractionError
from ..io import copy_dir, remove_all
from ..logging_utils import redact_url
from ..sources import subdir_glob
from .base import DispatchFn, PathLike

__all__ = ["STAGING_PREFIX", "STAGED_TREE_NAME", "fetch_subdir"]

LOGGER = logging.getLogger("ArtifactGet.getters.subdir")

STAGING_PREFIX = "artifact-get-"
STAGED_TREE_NAME = "data"

GlobFn = Callable[[str, str], str]
CopyFn = Callable[..., None]


def fetch_subdir(
    dispatch: DispatchFn,
    dst: PathLike,
    source: str,
    subdir: str,
    *,
    staging_dir: Optional[Path] = None,
    resolve_glob: GlobFn = subdir_glob,
    copy_tree: CopyFn = copy_dir,
) -> Path:
    """Fetch ``source`` into staging and copy its ``subdir`` into ``dst``.

    Args:
        dispatch: Recursive fetch used for the full ``source`` tree.
        dst: Final destination; replaced wholesale on success.
        source: Base locator with the subdirectory suffix already split off.
        subdir: Subdirectory specifier, possibly containing glob segments.
        staging_dir: Parent for the staging directory; OS temp dir when omitted.
        resolve_glob: Glob resolver ``(root, pattern) -> path``.
        copy_tree: Tree copier accepting ``(dst, src, follow_symlinks=...)``.

    Returns:
        The destination path.

    Raises:
        ExtractionError: If the resolved subdirectory is missing after staging,
            or the subdirectory pattern matches nothing or several paths.
    """

    destination = Path(dst)
    if staging_dir is not None:
        Path(staging_dir).mkdir(parents=True, exist_ok=True)

    with tempfile.TemporaryDirectory(prefix=STAGING_PREFIX, dir=staging_dir) as staging:
        staged_root = Path(staging) / STAGED_TREE_NAME
        dispatch(staged_root, source)

        resolved = Path(resolve_glob(str(staged_root), subdir))
        try:
            os.stat(resolved)
        except OSError as exc:
            raise ExtractionError(f"Error downloading {source}: {exc}", source=source) from exc

        remove_all(destination)
        destination.mkdir(parents=True, exist_ok=True)
        copy_tree(destination, resolved, follow_symlinks=False)

        LOGGER.info(
            "promoted subdirectory",
            extra={
                "stage": "extract",
                "source": redact_url(source),
                "subdir": subdir,
                "destination": str(destination),
            },
        )
    return destination

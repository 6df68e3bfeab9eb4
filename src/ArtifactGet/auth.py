"""Credential augmentation from the user's netrc file."""

from __future__ import annotations

import logging
import netrc
import os
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlsplit, urlunsplit

from .errors import CredentialsError

__all__ = ["netrc_path", "add_auth_from_netrc"]

LOGGER = logging.getLogger("ArtifactGet.auth")


def netrc_path() -> Path:
    """Return the netrc location: ``$NETRC`` when set, else the home default."""

    override = os.environ.get("NETRC", "").strip()
    if override:
        return Path(override).expanduser()
    name = "_netrc" if os.name == "nt" else ".netrc"
    return Path.home() / name


def add_auth_from_netrc(url: str, *, path: Optional[Path] = None) -> str:
    """Return a copy of ``url`` carrying netrc credentials for its host.

    URLs that already include user info are returned unchanged, as are URLs
    whose host has no entry (and no ``default`` entry) in the file.  A missing
    netrc file is not an error.

    Raises:
        CredentialsError: If the netrc file exists but cannot be parsed.
    """

    parts = urlsplit(url)
    if parts.username is not None or not parts.hostname:
        return url

    location = path or netrc_path()
    if not location.is_file():
        return url

    try:
        entries = netrc.netrc(str(location))
    except (netrc.NetrcParseError, OSError) as exc:
        raise CredentialsError(f"Error parsing netrc file at {location}: {exc}") from exc

    credentials = entries.authenticators(parts.hostname)
    if credentials is None:
        return url
    login, _account, password = credentials
    if not login:
        return url

    userinfo = quote(login, safe="")
    if password:
        userinfo = f"{userinfo}:{quote(password, safe='')}"
    LOGGER.debug(
        "applied netrc credentials",
        extra={"stage": "auth", "url": urlunsplit(parts._replace(netloc=f"***@{parts.netloc}"))},
    )
    return urlunsplit(parts._replace(netloc=f"{userinfo}@{parts.netloc}"))

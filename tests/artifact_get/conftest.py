"""Shared fixtures for the artifact getter suite."""

from __future__ import annotations

import io
import logging
import os
import zipfile
from typing import Dict, Iterator, Union

import httpx
import pytest

from ArtifactGet.testing import MockServer, mock_http_client


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path) -> Iterator[None]:
    """Keep host configuration and earlier logging setup out of each test."""

    for key in list(os.environ):
        if key.startswith("ARTIFACTGET_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("NETRC", str(tmp_path / "absent.netrc"))

    logger = logging.getLogger("ArtifactGet")
    yield
    for handler in list(logger.handlers):
        if getattr(handler, "_artifactget_managed", False):
            logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def server() -> MockServer:
    return MockServer()


@pytest.fixture
def client(server: MockServer) -> Iterator[httpx.Client]:
    with mock_http_client(server.transport()) as http_client:
        yield http_client


def _zip_bytes(files: Dict[str, Union[str, bytes]]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def make_zip():
    """Return a factory building zip archive bytes from a name to content mapping."""

    return _zip_bytes


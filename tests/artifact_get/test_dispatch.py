"""Dispatcher routing: schemes, archives, subdirectories, and mode selection."""

from __future__ import annotations

import logging

import pytest

from ArtifactGet.dispatch import Dispatcher, fetch
from ArtifactGet.errors import UnsupportedProtocolError
from ArtifactGet.getters.base import ClientMode, DirectoryFetchResult, FileFetchResult
from ArtifactGet.settings import GetterSettings

ZIP_HEADERS = {"Content-Type": "application/zip"}


def _files(root):
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())


@pytest.mark.parametrize(
    ("src", "fmt", "locator"),
    [
        ("https://e.com/a.zip", "zip", "https://e.com/a.zip"),
        ("https://e.com/a.tar.gz?ref=1", "tar.gz", "https://e.com/a.tar.gz?ref=1"),
        ("https://e.com/download?archive=tgz", "tgz", "https://e.com/download"),
        ("https://e.com/a.zip?archive=false", None, "https://e.com/a.zip"),
        ("https://e.com/modules/", None, "https://e.com/modules/"),
    ],
)
def test_archive_format_detection(src, fmt, locator):
    assert Dispatcher.archive_format(src) == (fmt, locator)


@pytest.mark.parametrize("src", ["ftp://e.com/a.zip", "git::https://e.com/repo.git", "relative/path"])
def test_unsupported_schemes_are_rejected(client, tmp_path, src):
    with pytest.raises(UnsupportedProtocolError):
        Dispatcher(client).get(tmp_path / "out", src)


def test_archive_locator_is_fetched_and_extracted(server, client, tmp_path, make_zip):
    server.add(
        "/real/module.zip",
        headers=ZIP_HEADERS,
        body=make_zip({"main.tf": "resource {}", "modules/vpc/vpc.tf": "vpc"}),
    )
    destination = tmp_path / "out"

    result = Dispatcher(client).get(destination, "https://example.com/real/module.zip")

    assert isinstance(result, DirectoryFetchResult)
    assert _files(destination) == ["main.tf", "modules/vpc/vpc.tf"]
    (request,) = server.requests
    assert "terraform-get" not in request.params


def test_archive_query_parameter_is_stripped_from_request(server, client, tmp_path, make_zip):
    server.add("/download", body=make_zip({"a.txt": "a"}))

    Dispatcher(client).get(tmp_path / "out", "https://example.com/download?archive=zip&v=2")

    (request,) = server.requests
    assert request.params == {"v": "2"}
    assert _files(tmp_path / "out") == ["a.txt"]


def test_discovered_archive_with_subdir_end_to_end(server, client, tmp_path, make_zip):
    server.add(
        "/modules/network",
        headers={"X-Terraform-Get": "https://example.com/real/module.zip//sub/dir"},
    )
    server.add(
        "/real/module.zip",
        headers=ZIP_HEADERS,
        body=make_zip(
            {
                "README.md": "top",
                "sub/dir/main.tf": "resource {}",
                "sub/dir/nested/outputs.tf": "output {}",
                "sub/other.tf": "sibling",
            }
        ),
    )
    staging = tmp_path / "staging"
    destination = tmp_path / "out"
    dispatcher = Dispatcher(client, settings=GetterSettings(staging_dir=staging))

    result = dispatcher.get(destination, "https://example.com/modules/network")

    assert _files(destination) == ["main.tf", "nested/outputs.tf"]
    assert (result.source, result.subdir) == ("https://example.com/real/module.zip", "sub/dir")
    assert list(staging.iterdir()) == []
    discovery, download = server.requests
    assert discovery.params == {"terraform-get": "1"}
    assert download.path == "/real/module.zip"


def test_explicit_subdir_on_archive_locator(server, client, tmp_path, make_zip):
    server.add("/pkg.zip", body=make_zip({"root.txt": "r", "inner/keep.txt": "k"}))
    staging = tmp_path / "staging"

    Dispatcher(client, settings=GetterSettings(staging_dir=staging)).get(
        tmp_path / "out", "https://example.com/pkg.zip//inner"
    )

    assert _files(tmp_path / "out") == ["keep.txt"]
    assert list(staging.iterdir()) == []


def test_get_file_logs_directive_warnings(server, client, tmp_path, caplog):
    server.add("/tool.bin", body=b"payload")

    with caplog.at_level(logging.WARNING, logger="ArtifactGet"):
        result = Dispatcher(client).get_file(
            tmp_path / "tool.bin", "https://example.com/tool.bin?ranged_request_bytes=x-"
        )

    assert result.warnings
    assert any("Invalid byte range provided" in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize(
    ("src", "expected"),
    [
        ("https://example.com/tool.bin", FileFetchResult),
        ("https://example.com/modules/", DirectoryFetchResult),
        ("https://example.com/bundle.zip", DirectoryFetchResult),
    ],
)
def test_get_any_picks_mode(server, client, tmp_path, make_zip, src, expected):
    server.add("/tool.bin", body=b"payload")
    server.add("/modules/", headers={"X-Terraform-Get": "https://example.com/bundle.zip"})
    server.add("/bundle.zip", body=make_zip({"a.txt": "a"}))

    result = Dispatcher(client).get_any(tmp_path / "out", src)

    assert isinstance(result, expected)


def test_fetch_honours_explicit_mode(server, client, tmp_path, make_zip):
    archive = make_zip({"a.txt": "a"})
    server.add("/bundle.zip", body=archive)

    result = fetch(tmp_path / "raw.zip", "https://example.com/bundle.zip", mode=ClientMode.FILE, client=client)

    assert isinstance(result, FileFetchResult)
    assert (tmp_path / "raw.zip").read_bytes() == archive
    assert not client.is_closed


def test_custom_getter_registry(tmp_path):
    class FakeGetter:
        def __init__(self):
            self.calls = []

        def client_mode(self, url):
            return ClientMode.FILE

        def get(self, dst, url):
            self.calls.append(("get", url))
            return DirectoryFetchResult(destination=dst, source=url)

        def get_file(self, dst, url):
            self.calls.append(("get_file", url))
            return FileFetchResult(path=dst, status_code=200)

    fake = FakeGetter()
    with Dispatcher(getters={"MEM": fake}) as dispatcher:
        dispatcher.get_any(tmp_path / "x", "mem://bucket/key")
        dispatcher.get(tmp_path / "y", "mem://bucket/tree")
        with pytest.raises(UnsupportedProtocolError):
            dispatcher.get_file(tmp_path / "z", "https://example.com/file")

    assert fake.calls == [("get_file", "mem://bucket/key"), ("get", "mem://bucket/tree")]

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch
from typing import Any

import pytest
import requests

from vm_provision.core.exceptions import DownloadError
from vm_provision.core.images import download_image, ensure_image
from vm_provision.core.models import DistroSelection


class FakeResponse:
    def __init__(self, chunks: list[bytes], *, status: int = 200, length: int | None = None) -> None:
        self.chunks = chunks
        self.status = status
        self.headers: dict[str, str] = {}
        if length is not None:
            self.headers["Content-Length"] = str(length)

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc: Any) -> None:
        return None

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Client Error")

    def iter_content(self, chunk_size: int = 1) -> list[bytes]:
        return self.chunks


class FakeSession:
    def __init__(self, response: FakeResponse | Exception) -> None:
        self.response = response
        self.headers: dict[str, str] = {}
        self.requested: list[str] = []
        self.request_headers: list[dict[str, str]] = []
        self.closed = False

    def __enter__(self) -> FakeSession:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.closed = True

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requested.append(url)
        self.request_headers.append(kwargs.get("headers", {}))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def test_download_streams_to_destination_and_reports_progress(tmp_path: Path) -> None:
    session = FakeSession(FakeResponse([b"abc", b"", b"defg"], length=7))
    progress: list[tuple[int, int | None]] = []
    destination = tmp_path / "images" / "disk.qcow2"

    download_image(
        "https://example.com/disk.qcow2",
        destination,
        session=session,  # type: ignore[arg-type]
        progress=lambda done, total: progress.append((done, total)),
    )

    assert destination.read_bytes() == b"abcdefg"
    assert progress == [(3, 7), (7, 7)]
    assert session.request_headers[0]["User-Agent"].startswith("vm-provision")
    assert session.headers == {}
    assert session.closed is False
    assert sorted(p.name for p in destination.parent.iterdir()) == ["disk.qcow2"]


def test_http_error_raises_download_error_and_leaves_no_file(tmp_path: Path) -> None:
    session = FakeSession(FakeResponse([b"nope"], status=404))
    destination = tmp_path / "images" / "disk.qcow2"

    with pytest.raises(DownloadError, match="couldn't download disk.qcow2"):
        download_image("https://example.com/disk.qcow2", destination, session=session)  # type: ignore[arg-type]

    assert not destination.exists()
    assert list(destination.parent.iterdir()) == []


def test_connection_error_raises_download_error(tmp_path: Path) -> None:
    session = FakeSession(requests.ConnectionError("unreachable"))

    with pytest.raises(DownloadError):
        download_image("https://example.com/x.qcow2", tmp_path / "x.qcow2", session=session)  # type: ignore[arg-type]


def test_ensure_image_skips_cached_file(tmp_path: Path) -> None:
    cached = tmp_path / "images" / "disk.qcow2"
    cached.parent.mkdir()
    cached.write_bytes(b"cached")
    session = FakeSession(FakeResponse([b"new"]))
    selection = DistroSelection(image_filename="disk.qcow2", download_url="https://example.com/disk.qcow2")

    path = ensure_image(selection, tmp_path, session=session)  # type: ignore[arg-type]

    assert path == cached
    assert session.requested == []
    assert cached.read_bytes() == b"cached"


def test_ensure_image_downloads_missing_file(tmp_path: Path) -> None:
    session = FakeSession(FakeResponse([b"fresh"]))
    selection = DistroSelection(image_filename="disk.qcow2", download_url="https://example.com/disk.qcow2")

    path = ensure_image(selection, tmp_path, session=session)  # type: ignore[arg-type]

    assert path.read_bytes() == b"fresh"
    assert session.requested == ["https://example.com/disk.qcow2"]


def test_ensure_image_without_url_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(DownloadError, match="no download URL"):
        ensure_image(DistroSelection(image_filename="disk.qcow2"), tmp_path)


def test_owned_session_is_closed_after_download(tmp_path: Path) -> None:
    session = FakeSession(FakeResponse([b"abc"]))

    with patch("vm_provision.core.images.requests.Session", return_value=session):
        download_image("https://example.com/disk.qcow2", tmp_path / "disk.qcow2")

    assert session.closed is True
    assert (tmp_path / "disk.qcow2").read_bytes() == b"abc"


def test_unusable_images_directory_raises_download_error(tmp_path: Path) -> None:
    (tmp_path / "images").write_text("not a directory", encoding="utf-8")
    session = FakeSession(FakeResponse([b"abc"]))
    selection = DistroSelection(image_filename="disk.qcow2", download_url="https://example.com/disk.qcow2")

    with pytest.raises(DownloadError, match="couldn't write"):
        ensure_image(selection, tmp_path, session=session)  # type: ignore[arg-type]

    assert session.requested == []

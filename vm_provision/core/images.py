"""Fetch-if-absent cache of base cloud images."""

from __future__ import annotations

import contextlib
import tempfile
from collections.abc import Callable
from pathlib import Path

import requests
import structlog

from vm_provision.core.catalog import images_dir
from vm_provision.core.exceptions import DownloadError
from vm_provision.core.models import DistroSelection

LOGGER = structlog.get_logger(__name__)

USER_AGENT = "vm-provision/0.1"
REQUEST_TIMEOUT = 60
CHUNK_SIZE = 1024 * 256

ProgressCallback = Callable[[int, int | None], None]


def cached_image_path(selection: DistroSelection, workdir: Path) -> Path:
    return images_dir(workdir) / selection.image_filename


def download_image(
    url: str,
    destination: Path,
    *,
    session: requests.Session | None = None,
    progress: ProgressCallback | None = None,
) -> None:
    """Stream ``url`` into ``destination`` through a temporary file in the same directory."""

    temp_path: Path | None = None
    downloaded = 0
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        session_context = contextlib.nullcontext(session) if session is not None else requests.Session()
        with session_context as http, http.get(
            url,
            headers={"User-Agent": USER_AGENT},
            stream=True,
            timeout=REQUEST_TIMEOUT,
            allow_redirects=True,
        ) as response:
            response.raise_for_status()
            total_header = response.headers.get("Content-Length")
            total = int(total_header) if total_header and total_header.isdigit() else None
            with tempfile.NamedTemporaryFile(dir=destination.parent, delete=False) as handle:
                temp_path = Path(handle.name)
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    handle.write(chunk)
                    downloaded += len(chunk)
                    if progress is not None:
                        progress(downloaded, total)
        temp_path.replace(destination)
        temp_path = None
    except requests.RequestException as exc:
        raise DownloadError(f"couldn't download {destination.name} from {url}: {exc}") from exc
    except OSError as exc:
        raise DownloadError(f"couldn't write {destination}: {exc}") from exc
    finally:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
    LOGGER.info("image-downloaded", path=str(destination), bytes=downloaded)


def ensure_image(
    selection: DistroSelection,
    workdir: Path,
    *,
    session: requests.Session | None = None,
    progress: ProgressCallback | None = None,
) -> Path:
    """Return the cached base image, downloading it first when it is missing."""

    path = cached_image_path(selection, workdir)
    if path.is_file():
        LOGGER.debug("image-cached", path=str(path))
        return path
    if not selection.download_url:
        raise DownloadError(f"{selection.image_filename} is not in {path.parent} and no download URL was given")
    LOGGER.info("image-download", image=selection.image_filename, url=selection.download_url)
    download_image(selection.download_url, path, session=session, progress=progress)
    return path


__all__ = ["cached_image_path", "download_image", "ensure_image"]

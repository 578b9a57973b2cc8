"""Supported cloud images and the distribution selection step."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict

from vm_provision.core.exceptions import SelectionCancelled
from vm_provision.core.models import DistroSelection
from vm_provision.core.overrides import ImageOverride

LOGGER = structlog.get_logger(__name__)

IMAGES_DIRNAME = "images"


class CatalogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    image_filename: str
    base_url: str

    @property
    def download_url(self) -> str:
        return f"{self.base_url}{self.image_filename}"

    def to_selection(self) -> DistroSelection:
        return DistroSelection(image_filename=self.image_filename, download_url=self.download_url)


CATALOG: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        key="a",
        label="AlmaLinux 8",
        image_filename="AlmaLinux-8-GenericCloud-latest.x86_64.qcow2",
        base_url="https://repo.almalinux.org/almalinux/8/cloud/x86_64/images/",
    ),
    CatalogEntry(
        key="b",
        label="AlmaLinux 9",
        image_filename="AlmaLinux-9-GenericCloud-latest.x86_64.qcow2",
        base_url="https://repo.almalinux.org/almalinux/9/cloud/x86_64/images/",
    ),
    CatalogEntry(
        key="c",
        label="Arch Linux",
        image_filename="Arch-Linux-x86_64-cloudimg.qcow2",
        base_url="https://geo.mirror.pkgbuild.com/images/latest/",
    ),
    CatalogEntry(
        key="d",
        label="Debian 11",
        image_filename="debian-11-genericcloud-amd64.qcow2",
        base_url="https://cloud.debian.org/images/cloud/bullseye/latest/",
    ),
    CatalogEntry(
        key="e",
        label="Debian 12",
        image_filename="debian-12-genericcloud-amd64.qcow2",
        base_url="https://cloud.debian.org/images/cloud/bookworm/latest/",
    ),
    CatalogEntry(
        key="f",
        label="Fedora 38",
        image_filename="Fedora-Cloud-Base-38-1.6.x86_64.qcow2",
        base_url="https://download.fedoraproject.org/pub/fedora/linux/releases/38/Cloud/x86_64/images/",
    ),
    CatalogEntry(
        key="g",
        label="openSUSE Leap 15.5",
        image_filename="openSUSE-Leap-15.5-Minimal-VM.x86_64-Cloud.qcow2",
        base_url="https://download.opensuse.org/distribution/leap/15.5/appliances/",
    ),
    CatalogEntry(
        key="h",
        label="Rocky Linux 8",
        image_filename="Rocky-8-GenericCloud.latest.x86_64.qcow2",
        base_url="http://dl.rockylinux.org/pub/rocky/8/images/x86_64/",
    ),
    CatalogEntry(
        key="i",
        label="Rocky Linux 9",
        image_filename="Rocky-9-GenericCloud.latest.x86_64.qcow2",
        base_url="http://dl.rockylinux.org/stg/rocky/9/images/x86_64/",
    ),
    CatalogEntry(
        key="j",
        label="Ubuntu 20.04 LTS",
        image_filename="focal-server-cloudimg-amd64.img",
        base_url="https://cloud-images.ubuntu.com/focal/current/",
    ),
    CatalogEntry(
        key="k",
        label="Ubuntu 22.04 LTS",
        image_filename="jammy-server-cloudimg-amd64.img",
        base_url="https://cloud-images.ubuntu.com/jammy/current/",
    ),
    CatalogEntry(
        key="l",
        label="Ubuntu 23.04",
        image_filename="lunar-server-cloudimg-amd64.img",
        base_url="https://cloud-images.ubuntu.com/lunar/current/",
    ),
)

DistroChooser = Callable[[Sequence[CatalogEntry]], CatalogEntry | None]


def images_dir(workdir: Path) -> Path:
    return workdir / IMAGES_DIRNAME


def selection_from_override(override: ImageOverride, workdir: Path) -> DistroSelection | None:
    """Return the externally supplied image when the catalog can be skipped.

    The override is usable when the file is already cached, or when a download
    URL accompanies it.
    """

    filename = override.image_filename
    if not filename:
        return None
    if (images_dir(workdir) / filename).is_file():
        return DistroSelection(image_filename=filename, download_url=override.download_url)
    if override.download_url:
        return DistroSelection(image_filename=filename, download_url=override.download_url)
    return None


def select_distro(
    override: ImageOverride,
    workdir: Path,
    chooser: DistroChooser,
    *,
    catalog: Sequence[CatalogEntry] = CATALOG,
) -> DistroSelection:
    selection = selection_from_override(override, workdir)
    if selection is not None:
        LOGGER.debug("distro-from-environment", image=selection.image_filename)
        return selection
    entry = chooser(catalog)
    if entry is None:
        raise SelectionCancelled("distro selection canceled.")
    LOGGER.info("distro-selected", distro=entry.label, image=entry.image_filename)
    return entry.to_selection()


__all__ = [
    "CATALOG",
    "CatalogEntry",
    "DistroChooser",
    "images_dir",
    "select_distro",
    "selection_from_override",
]

"""Environment variable overrides for the option defaults."""

from __future__ import annotations

from collections.abc import Mapping

import structlog
from pydantic import BaseModel, ConfigDict, Field

from vm_provision.core.models import FIELD_ORDER, VMOptions

LOGGER = structlog.get_logger(__name__)

ENV_PREFIX = "VM_PROVISION_"

FIELD_ENV_VARS: dict[str, str] = {
    "hostname": f"{ENV_PREFIX}HOSTNAME",
    "domain": f"{ENV_PREFIX}DOMAIN",
    "ip": f"{ENV_PREFIX}IP",
    "gateway": f"{ENV_PREFIX}GW",
    "dns": f"{ENV_PREFIX}DNS",
    "bridge": f"{ENV_PREFIX}BRIDGE",
    "username": f"{ENV_PREFIX}USER",
    "pubkey": f"{ENV_PREFIX}PUBKEY",
    "ram": f"{ENV_PREFIX}RAM",
    "disk": f"{ENV_PREFIX}DISK",
    "cpus": f"{ENV_PREFIX}CPUS",
}
IMAGE_ENV_VAR = f"{ENV_PREFIX}BASEIMG"
IMAGE_URL_ENV_VAR = f"{ENV_PREFIX}BASEIMG_URL"


class ImageOverride(BaseModel):
    model_config = ConfigDict(frozen=True)

    image_filename: str | None = None
    download_url: str | None = None


class ResolvedOptions(BaseModel):
    """Effective defaults after applying the environment."""

    model_config = ConfigDict(frozen=True)

    options: VMOptions
    overridden: tuple[str, ...] = ()
    image: ImageOverride = Field(default_factory=ImageOverride)

    @property
    def fully_supplied(self) -> bool:
        """True when every form field came from the environment."""
        return len(self.overridden) == len(FIELD_ORDER)


def _env_value(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(name)
    if value is None or value == "":
        return None
    return value


def resolve_overrides(stored: VMOptions, environ: Mapping[str, str]) -> ResolvedOptions:
    """Replace each stored field whose variable is set and non-empty.

    Values are taken verbatim; validation happens later in the form loop.
    """

    updates: dict[str, str] = {}
    for field in FIELD_ORDER:
        value = _env_value(environ, FIELD_ENV_VARS[field])
        if value is not None:
            updates[field] = value
    image = ImageOverride(
        image_filename=_env_value(environ, IMAGE_ENV_VAR),
        download_url=_env_value(environ, IMAGE_URL_ENV_VAR),
    )
    if updates:
        LOGGER.debug("environment-overrides", fields=sorted(updates))
    overridden = tuple(field for field in FIELD_ORDER if field in updates)
    return ResolvedOptions(options=stored.model_copy(update=updates), overridden=overridden, image=image)


__all__ = [
    "FIELD_ENV_VARS",
    "IMAGE_ENV_VAR",
    "IMAGE_URL_ENV_VAR",
    "ImageOverride",
    "ResolvedOptions",
    "resolve_overrides",
]

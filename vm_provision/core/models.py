"""Pydantic models shared by the provisioning pipeline."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

FIELD_ORDER: tuple[str, ...] = (
    "hostname",
    "domain",
    "ip",
    "gateway",
    "dns",
    "bridge",
    "username",
    "pubkey",
    "ram",
    "disk",
    "cpus",
)

FIELD_LABELS: dict[str, str] = {
    "hostname": "Hostname",
    "domain": "Domain name",
    "ip": "IP address/CIDR",
    "gateway": "Gateway IP",
    "dns": "DNS Server(s)",
    "bridge": "Bridge interface",
    "username": "Username",
    "pubkey": "SSH pubkey path",
    "ram": "RAM size (MB)",
    "disk": "Disk size (GB)",
    "cpus": "# of CPUs",
}


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class VMOptions(_FrozenModel):
    """Raw option values exactly as stored, supplied or typed into the form."""

    hostname: str = ""
    domain: str = ""
    ip: str = ""
    gateway: str = ""
    dns: str = ""
    bridge: str = ""
    username: str = ""
    pubkey: str = ""
    ram: str = ""
    disk: str = ""
    cpus: str = ""

    def trimmed(self) -> VMOptions:
        return VMOptions(**{name: getattr(self, name).strip() for name in FIELD_ORDER})

    def missing_fields(self) -> list[str]:
        return [name for name in FIELD_ORDER if not getattr(self, name)]


class VMConfig(_FrozenModel):
    """A fully validated VM configuration."""

    hostname: str
    domain: str
    ip: str
    gateway: str
    dns_servers: tuple[str, ...] = Field(min_length=1, max_length=2)
    bridge: str
    username: str
    pubkey_path: str
    ram_mb: int = Field(ge=256)
    disk_gb: int = Field(ge=1)
    cpus: int = Field(ge=1)

    @property
    def fqdn(self) -> str:
        return f"{self.hostname}.{self.domain}"

    @property
    def pubkey_file(self) -> Path:
        return Path(self.pubkey_path).expanduser()

    @property
    def connect_ip(self) -> str:
        """IP address without the prefix length."""
        return self.ip.split("/", 1)[0]


class DistroSelection(_FrozenModel):
    image_filename: str
    download_url: str | None = None


class InstanceIdentity(_FrozenModel):
    instance_uuid: str
    mac_address: str


class FieldError(_FrozenModel):
    field: str
    message: str


__all__ = [
    "FIELD_LABELS",
    "FIELD_ORDER",
    "DistroSelection",
    "FieldError",
    "InstanceIdentity",
    "VMConfig",
    "VMOptions",
]

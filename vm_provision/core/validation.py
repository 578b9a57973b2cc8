"""Field validation for the VM options form.

Validation runs in two phases. First every field is checked for presence and
all missing fields are reported together. Only when nothing is missing do the
format rules run, in a fixed order, stopping at the first failure.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict

from vm_provision.core.models import FieldError, VMConfig, VMOptions
from vm_provision.utils.commands import CommandExecutionError, run_command

LOGGER = structlog.get_logger(__name__)

KeyChecker = Callable[[Path], bool]

_IPV4 = r"[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}"
HOSTNAME_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9-]*")
DOMAIN_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9.-]*")
IP_CIDR_RE = re.compile(rf"({_IPV4})(?:/([0-9]{{1,2}}))?")
GATEWAY_RE = re.compile(_IPV4)
DNS_RE = re.compile(rf"({_IPV4})(?: ({_IPV4}))?")
USERNAME_RE = re.compile(r"[a-zA-Z][a-zA-Z0-9-]*")
INTEGER_RE = re.compile(r"[0-9]+")

MIN_RAM_MB = 256
MIN_DISK_GB = 1
MIN_CPUS = 1
# Width of the numeric fields in the form.
MAX_NUMBER_DIGITS = 10

REQUIRED_MESSAGES: dict[str, str] = {
    "hostname": "The hostname field is required.",
    "domain": "The domain name field is required.",
    "ip": "The IP address field is required.",
    "gateway": "The gateway address field is required.",
    "dns": "The DNS servers field is required.",
    "bridge": "The bridge interface field is required.",
    "username": "The username field is required.",
    "pubkey": "The SSH public key path is required.",
    "ram": "The RAM size field is required.",
    "disk": "The disk size field is required.",
    "cpus": "The number of CPUs is required.",
}

HOSTNAME_MESSAGE = (
    "Hostname must consist only of letters, numbers, and the hyphen (-). "
    "A hostname may not start with a hyphen."
)
DOMAIN_MESSAGE = "Domain name must consist only of letters, numbers, hyphens, and periods."
IP_MESSAGE = "IP address must be an IPv4 address of the form '1.2.3.4' or '1.2.3.4/24'."
GATEWAY_MESSAGE = "Gateway address must be an IPv4 address of the form '1.2.3.4'."
DNS_MESSAGE = "DNS servers must be a space-delimited list of IPv4 addresses."
USERNAME_MESSAGE = (
    "Usernames may only contain letters, numbers, and the hyphen. "
    "Usernames may not start with a hyphen or a number."
)
PUBKEY_MISSING_MESSAGE = "The public key file does not exist."
PUBKEY_PRIVATE_MESSAGE = "The public key file appears to be a private key, not a public key."
PUBKEY_INVALID_MESSAGE = "The public key file does not appear to be valid."
RAM_MESSAGE = f"RAM size (MB) must be a number {MIN_RAM_MB} or larger."
DISK_MESSAGE = f"Disk size (GB) must be a number {MIN_DISK_GB} or larger."
CPUS_MESSAGE = f"Number of CPUs must be {MIN_CPUS} or larger."


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    options: VMOptions
    errors: tuple[FieldError, ...] = ()
    config: VMConfig | None = None

    @property
    def ok(self) -> bool:
        return not self.errors


def _octets_in_range(address: str) -> bool:
    return all(int(part) <= 255 for part in address.split("."))


def is_ipv4(value: str) -> bool:
    return GATEWAY_RE.fullmatch(value) is not None and _octets_in_range(value)


def is_ipv4_cidr(value: str) -> bool:
    match = IP_CIDR_RE.fullmatch(value)
    if match is None or not _octets_in_range(match.group(1)):
        return False
    prefix = match.group(2)
    return prefix is None or int(prefix) <= 32


def parse_dns_servers(value: str) -> tuple[str, ...] | None:
    match = DNS_RE.fullmatch(value)
    if match is None:
        return None
    servers = tuple(server for server in match.groups() if server)
    if not all(_octets_in_range(server) for server in servers):
        return None
    return servers


def parse_minimum_int(value: str, minimum: int) -> int | None:
    if len(value) > MAX_NUMBER_DIGITS or INTEGER_RE.fullmatch(value) is None:
        return None
    number = int(value)
    return number if number >= minimum else None


def ssh_keygen_accepts(path: Path) -> bool:
    """Return True when ``ssh-keygen`` can compute a fingerprint for ``path``."""

    try:
        result = run_command(["ssh-keygen", "-l", "-f", str(path)], check=False)
    except CommandExecutionError as exc:
        LOGGER.warning("ssh-keygen-unavailable", error=str(exc))
        return False
    return result.returncode == 0


def _looks_private(path: Path) -> bool:
    with path.open(encoding="utf-8", errors="replace") as handle:
        first_line = handle.readline()
    return first_line.startswith("-")


def required_errors(options: VMOptions) -> list[FieldError]:
    return [FieldError(field=name, message=REQUIRED_MESSAGES[name]) for name in options.missing_fields()]


def first_format_error(options: VMOptions, *, vms_dir: Path, key_checker: KeyChecker) -> FieldError | None:
    """Apply the format rules in order and return the first failure."""

    if HOSTNAME_RE.fullmatch(options.hostname) is None:
        return FieldError(field="hostname", message=HOSTNAME_MESSAGE)
    if (vms_dir / options.hostname).exists():
        return FieldError(
            field="hostname",
            message=f"The VM {options.hostname} already exists in the {vms_dir.name} directory.",
        )
    if DOMAIN_RE.fullmatch(options.domain) is None:
        return FieldError(field="domain", message=DOMAIN_MESSAGE)
    if not is_ipv4_cidr(options.ip):
        return FieldError(field="ip", message=IP_MESSAGE)
    if not is_ipv4(options.gateway):
        return FieldError(field="gateway", message=GATEWAY_MESSAGE)
    if parse_dns_servers(options.dns) is None:
        return FieldError(field="dns", message=DNS_MESSAGE)
    # Bridge names are only checked for presence.
    if USERNAME_RE.fullmatch(options.username) is None:
        return FieldError(field="username", message=USERNAME_MESSAGE)

    pubkey = Path(options.pubkey).expanduser()
    if not pubkey.is_file():
        return FieldError(field="pubkey", message=PUBKEY_MISSING_MESSAGE)
    try:
        if _looks_private(pubkey):
            return FieldError(field="pubkey", message=PUBKEY_PRIVATE_MESSAGE)
    except OSError:
        return FieldError(field="pubkey", message=PUBKEY_MISSING_MESSAGE)
    if not key_checker(pubkey):
        return FieldError(field="pubkey", message=PUBKEY_INVALID_MESSAGE)

    if parse_minimum_int(options.ram, MIN_RAM_MB) is None:
        return FieldError(field="ram", message=RAM_MESSAGE)
    if parse_minimum_int(options.disk, MIN_DISK_GB) is None:
        return FieldError(field="disk", message=DISK_MESSAGE)
    if parse_minimum_int(options.cpus, MIN_CPUS) is None:
        return FieldError(field="cpus", message=CPUS_MESSAGE)
    return None


def build_config(options: VMOptions) -> VMConfig:
    """Convert trimmed options that passed every rule into a VMConfig."""

    dns_servers = parse_dns_servers(options.dns) or ()
    return VMConfig(
        hostname=options.hostname,
        domain=options.domain,
        ip=options.ip,
        gateway=options.gateway,
        dns_servers=dns_servers,
        bridge=options.bridge,
        username=options.username,
        pubkey_path=options.pubkey,
        ram_mb=int(options.ram),
        disk_gb=int(options.disk),
        cpus=int(options.cpus),
    )


def validate_options(
    options: VMOptions,
    *,
    vms_dir: Path,
    key_checker: KeyChecker = ssh_keygen_accepts,
) -> ValidationResult:
    trimmed = options.trimmed()
    missing = required_errors(trimmed)
    if missing:
        return ValidationResult(options=trimmed, errors=tuple(missing))
    error = first_format_error(trimmed, vms_dir=vms_dir, key_checker=key_checker)
    if error is not None:
        return ValidationResult(options=trimmed, errors=(error,))
    return ValidationResult(options=trimmed, config=build_config(trimmed))


__all__ = [
    "KeyChecker",
    "ValidationResult",
    "build_config",
    "is_ipv4",
    "is_ipv4_cidr",
    "parse_dns_servers",
    "parse_minimum_int",
    "ssh_keygen_accepts",
    "validate_options",
]

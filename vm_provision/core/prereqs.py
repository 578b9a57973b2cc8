"""Host prerequisite checks run before the wizard starts."""

from __future__ import annotations

import platform
import shutil
from collections.abc import Callable, Sequence
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict

from vm_provision.core.exceptions import PrerequisiteError

LOGGER = structlog.get_logger(__name__)

SUPPORTED_MACHINE = "x86_64"
KVM_DEVICE = Path("/dev/kvm")


class RequiredTool(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: str
    apt: str
    yum: str
    pacman: str

    def install_hint(self) -> str:
        return (
            f"The command {self.command} is required but not installed.\n"
            "Please use your package manager to install the package:\n"
            f"  apt install {self.apt}\n"
            f"  yum [or dnf] install {self.yum}\n"
            f"  pacman -S {self.pacman}"
        )


REQUIRED_TOOLS: tuple[RequiredTool, ...] = (
    RequiredTool(command="cloud-localds", apt="cloud-image-utils", yum="cloud-utils", pacman="cloud-image-utils"),
    RequiredTool(command="qemu-img", apt="qemu-utils", yum="qemu-img", pacman="qemu-img"),
    RequiredTool(command="ssh-keygen", apt="openssh-client", yum="openssh", pacman="openssh"),
)


def check_hardware(
    *,
    machine: Callable[[], str] = platform.machine,
    kvm_device: Path = KVM_DEVICE,
) -> None:
    arch = machine()
    if arch != SUPPORTED_MACHINE:
        raise PrerequisiteError(f"This tool only supports {SUPPORTED_MACHINE} hardware (found {arch}).")
    if not kvm_device.exists():
        raise PrerequisiteError("KVM does not appear to be active on this system.")


def missing_tools(
    tools: Sequence[RequiredTool] = REQUIRED_TOOLS,
    *,
    which: Callable[[str], str | None] = shutil.which,
) -> list[RequiredTool]:
    return [tool for tool in tools if which(tool.command) is None]


def check_tools(
    tools: Sequence[RequiredTool] = REQUIRED_TOOLS,
    *,
    which: Callable[[str], str | None] = shutil.which,
) -> None:
    """Report every missing tool at once so they can all be installed in one go."""

    missing = missing_tools(tools, which=which)
    if not missing:
        return
    LOGGER.debug("missing-tools", tools=[tool.command for tool in missing])
    hints = "\n\n".join(tool.install_hint() for tool in missing)
    raise PrerequisiteError(f"{hints}\n\nCannot continue until prerequisites are present.")


def check_prerequisites() -> None:
    check_hardware()
    check_tools()


__all__ = [
    "REQUIRED_TOOLS",
    "RequiredTool",
    "check_hardware",
    "check_prerequisites",
    "check_tools",
    "missing_tools",
]

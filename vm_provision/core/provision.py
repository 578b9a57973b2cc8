"""Builds the per-VM directory from an accepted configuration."""

from __future__ import annotations

import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from vm_provision.core.artifacts import (
    VMArtifacts,
    VMPaths,
    generate_identity,
    read_public_key_line,
    render_artifacts,
)
from vm_provision.core.catalog import images_dir
from vm_provision.core.exceptions import ProvisioningError
from vm_provision.core.models import DistroSelection, InstanceIdentity, VMConfig
from vm_provision.utils.commands import CommandExecutionError, CommandResult, run_command

LOGGER = structlog.get_logger(__name__)

LAUNCH_SCRIPT_MODE = 0o755

CommandRunner = Callable[[Sequence[str]], CommandResult]
StepReporter = Callable[[str], None]


@dataclass(frozen=True)
class ProvisionResult:
    config: VMConfig
    paths: VMPaths
    artifacts: VMArtifacts


def default_runner(command: Sequence[str]) -> CommandResult:
    return run_command(command)


def _ignore(_: str) -> None:
    return None


class VMProvisioner:
    """Runs the provisioning steps in order; any failure aborts without rollback."""

    def __init__(
        self,
        workdir: Path,
        *,
        runner: CommandRunner = default_runner,
        report: StepReporter = _ignore,
    ) -> None:
        self.workdir = workdir
        self.runner = runner
        self.report = report

    def provision(
        self,
        config: VMConfig,
        base_image: Path,
        *,
        identity: InstanceIdentity | None = None,
    ) -> ProvisionResult:
        paths = VMPaths.for_config(self.workdir, config)
        identity = identity or generate_identity()
        log = LOGGER.bind(vm=config.hostname)

        self._create_directory(paths)
        self._copy_base_image(base_image, paths)
        self._resize_disk(paths, config.disk_gb)

        try:
            public_key = read_public_key_line(config.pubkey_file)
        except OSError as exc:
            raise ProvisioningError(f"Unable to read public key {config.pubkey_path}: {exc}") from exc
        artifacts = render_artifacts(config, identity, public_key)
        self._write(paths.user_data, artifacts.user_data)
        self._write(paths.network_config, artifacts.network_config)
        self._write(paths.meta_data, artifacts.meta_data)
        self._build_metadata_disk(paths)
        self._write(paths.launch_script, artifacts.launch_script, mode=LAUNCH_SCRIPT_MODE)

        log.info("vm-provisioned", path=str(paths.vm_dir), uuid=identity.instance_uuid, mac=identity.mac_address)
        return ProvisionResult(config=config, paths=paths, artifacts=artifacts)

    def _step(self, message: str) -> None:
        LOGGER.debug("provision-step", step=message)
        self.report(message)

    def _relative(self, path: Path) -> str:
        try:
            return str(path.relative_to(self.workdir))
        except ValueError:
            return str(path)

    def _create_directory(self, paths: VMPaths) -> None:
        try:
            paths.vm_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ProvisioningError(f"Something went wrong creating {self._relative(paths.vm_dir)}: {exc}") from exc

    def _copy_base_image(self, base_image: Path, paths: VMPaths) -> None:
        self._step(f"Copying {self._relative(base_image)} to {self._relative(paths.disk_image)}...")
        try:
            shutil.copyfile(base_image, paths.disk_image)
        except OSError as exc:
            raise ProvisioningError(f"Something went wrong copying the base image: {exc}") from exc

    def _resize_disk(self, paths: VMPaths, disk_gb: int) -> None:
        self._step(f"Expanding disk image to {disk_gb}G")
        command = ["qemu-img", "resize", "-f", "qcow2", str(paths.disk_image), f"{disk_gb}G"]
        try:
            self.runner(command)
        except CommandExecutionError as exc:
            raise ProvisioningError(f"Something went wrong resizing the disk image: {exc}") from exc

    def _build_metadata_disk(self, paths: VMPaths) -> None:
        self._step(f"Creating cloud-init disk at {self._relative(paths.metadata_image)}...")
        command = [
            "cloud-localds",
            "-v",
            f"--network-config={paths.network_config}",
            str(paths.metadata_image),
            str(paths.user_data),
            str(paths.meta_data),
        ]
        try:
            self.runner(command)
        except CommandExecutionError as exc:
            raise ProvisioningError(f"Something went wrong creating the cloud-init disk: {exc}") from exc

    def _write(self, path: Path, content: str, *, mode: int | None = None) -> None:
        try:
            path.write_text(content, encoding="utf-8")
            if mode is not None:
                path.chmod(mode)
        except OSError as exc:
            raise ProvisioningError(f"Unable to write {self._relative(path)}: {exc}") from exc


def provision_vm(
    config: VMConfig,
    selection: DistroSelection,
    workdir: Path,
    *,
    runner: CommandRunner = default_runner,
    report: StepReporter = _ignore,
) -> ProvisionResult:
    base_image = images_dir(workdir) / selection.image_filename
    return VMProvisioner(workdir, runner=runner, report=report).provision(config, base_image)


__all__ = ["CommandRunner", "ProvisionResult", "VMProvisioner", "default_runner", "provision_vm"]

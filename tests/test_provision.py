from __future__ import annotations

import stat
from collections.abc import Sequence
from pathlib import Path

import pytest

from vm_provision.core.exceptions import ProvisioningError
from vm_provision.core.models import DistroSelection, InstanceIdentity, VMConfig
from vm_provision.core.provision import VMProvisioner, provision_vm
from vm_provision.utils.commands import CommandExecutionError, CommandResult

IDENTITY = InstanceIdentity(instance_uuid="0f8fad5b-d9cb-469f-a165-70867728950e", mac_address="1e:00:00:00:00:01")


class RecordingRunner:
    def __init__(self, fail_on: str | None = None) -> None:
        self.commands: list[list[str]] = []
        self.fail_on = fail_on

    def __call__(self, command: Sequence[str]) -> CommandResult:
        self.commands.append(list(command))
        if self.fail_on is not None and command[0] == self.fail_on:
            raise CommandExecutionError(f"Command failed (1): {command[0]}", returncode=1, stderr="boom")
        return CommandResult(stdout="", stderr="", returncode=0)


@pytest.fixture()
def config(pubkey_file: Path) -> VMConfig:
    return VMConfig(
        hostname="testvm",
        domain="example.com",
        ip="192.168.1.50/24",
        gateway="192.168.1.1",
        dns_servers=("1.1.1.1",),
        bridge="br0",
        username="alice",
        pubkey_path=str(pubkey_file),
        ram_mb=2048,
        disk_gb=20,
        cpus=2,
    )


@pytest.fixture()
def base_image(tmp_path: Path) -> Path:
    path = tmp_path / "images" / "base.qcow2"
    path.parent.mkdir()
    path.write_bytes(b"QFI\xfbbase")
    return path


def test_provision_creates_every_artifact(
    tmp_path: Path, config: VMConfig, base_image: Path, pubkey_file: Path
) -> None:
    runner = RecordingRunner()
    steps: list[str] = []

    result = VMProvisioner(tmp_path, runner=runner, report=steps.append).provision(
        config, base_image, identity=IDENTITY
    )

    vm_dir = tmp_path / "vms" / "testvm"
    assert result.paths.vm_dir == vm_dir
    assert (vm_dir / "hd-testvm.img").read_bytes() == b"QFI\xfbbase"
    assert (vm_dir / "cloud-init.meta.cfg").read_text(encoding="utf-8") == f"instance-id: {IDENTITY.instance_uuid}\n"
    public_key = pubkey_file.read_text(encoding="utf-8").strip()
    assert f"- {public_key}\n" in (vm_dir / "cloud-init.user.cfg").read_text(encoding="utf-8")
    assert "addresses: [192.168.1.50/24]" in (vm_dir / "cloud-init.net.cfg").read_text(encoding="utf-8")
    script = vm_dir / "start-testvm.sh"
    assert script.stat().st_mode & stat.S_IXUSR
    assert runner.commands == [
        ["qemu-img", "resize", "-f", "qcow2", str(vm_dir / "hd-testvm.img"), "20G"],
        [
            "cloud-localds",
            "-v",
            f"--network-config={vm_dir / 'cloud-init.net.cfg'}",
            str(vm_dir / "meta-testvm.img"),
            str(vm_dir / "cloud-init.user.cfg"),
            str(vm_dir / "cloud-init.meta.cfg"),
        ],
    ]
    assert steps[0] == "Copying images/base.qcow2 to vms/testvm/hd-testvm.img..."
    assert "Expanding disk image to 20G" in steps


def test_resize_failure_is_fatal(tmp_path: Path, config: VMConfig, base_image: Path) -> None:
    runner = RecordingRunner(fail_on="qemu-img")

    with pytest.raises(ProvisioningError, match="resizing the disk image"):
        VMProvisioner(tmp_path, runner=runner).provision(config, base_image, identity=IDENTITY)

    assert [command[0] for command in runner.commands] == ["qemu-img"]
    assert not (tmp_path / "vms" / "testvm" / "start-testvm.sh").exists()


def test_metadata_disk_failure_is_fatal(tmp_path: Path, config: VMConfig, base_image: Path) -> None:
    runner = RecordingRunner(fail_on="cloud-localds")

    with pytest.raises(ProvisioningError, match="cloud-init disk"):
        VMProvisioner(tmp_path, runner=runner).provision(config, base_image, identity=IDENTITY)

    # Partial artifacts are left in place.
    assert (tmp_path / "vms" / "testvm" / "cloud-init.user.cfg").exists()
    assert not (tmp_path / "vms" / "testvm" / "start-testvm.sh").exists()


def test_missing_base_image_is_fatal(tmp_path: Path, config: VMConfig) -> None:
    with pytest.raises(ProvisioningError, match="copying the base image"):
        VMProvisioner(tmp_path, runner=RecordingRunner()).provision(config, tmp_path / "absent.qcow2")


def test_provision_vm_uses_cached_image(tmp_path: Path, config: VMConfig, base_image: Path) -> None:
    runner = RecordingRunner()

    result = provision_vm(config, DistroSelection(image_filename="base.qcow2"), tmp_path, runner=runner)

    assert result.paths.disk_image.read_bytes() == base_image.read_bytes()
    assert len(result.artifacts.identity.instance_uuid) == 36

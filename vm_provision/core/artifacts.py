"""Generated identifiers, cloud-init documents and the launch script for a VM."""

from __future__ import annotations

import secrets
import textwrap
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from vm_provision.core.models import InstanceIdentity, VMConfig

VMS_DIRNAME = "vms"
USER_DATA_FILENAME = "cloud-init.user.cfg"
NETWORK_CONFIG_FILENAME = "cloud-init.net.cfg"
META_DATA_FILENAME = "cloud-init.meta.cfg"
INTERFACE_NAME = "eth0"
HYPERVISOR_BINARY = "qemu-system-x86_64"

# Second hex digit of the first octet: locally administered, unicast.
LOCAL_UNICAST_NIBBLES = (0x2, 0x6, 0xA, 0xE)


@dataclass(frozen=True)
class VMPaths:
    """Locations of every file produced for one VM."""

    vm_dir: Path
    hostname: str

    @classmethod
    def for_config(cls, workdir: Path, config: VMConfig) -> VMPaths:
        return cls(vm_dir=workdir / VMS_DIRNAME / config.hostname, hostname=config.hostname)

    @property
    def disk_image(self) -> Path:
        return self.vm_dir / f"hd-{self.hostname}.img"

    @property
    def metadata_image(self) -> Path:
        return self.vm_dir / f"meta-{self.hostname}.img"

    @property
    def user_data(self) -> Path:
        return self.vm_dir / USER_DATA_FILENAME

    @property
    def network_config(self) -> Path:
        return self.vm_dir / NETWORK_CONFIG_FILENAME

    @property
    def meta_data(self) -> Path:
        return self.vm_dir / META_DATA_FILENAME

    @property
    def launch_script(self) -> Path:
        return self.vm_dir / f"start-{self.hostname}.sh"


@dataclass(frozen=True)
class VMArtifacts:
    identity: InstanceIdentity
    user_data: str
    network_config: str
    meta_data: str
    launch_script: str


def generate_instance_uuid() -> str:
    return str(uuid.uuid4())


def generate_mac_address(randbytes: Callable[[int], bytes] = secrets.token_bytes) -> str:
    octets = bytearray(randbytes(6))
    nibble = LOCAL_UNICAST_NIBBLES[octets[0] % len(LOCAL_UNICAST_NIBBLES)]
    octets[0] = (octets[0] & 0xF0) | nibble
    return ":".join(f"{octet:02x}" for octet in octets)


def generate_identity() -> InstanceIdentity:
    return InstanceIdentity(instance_uuid=generate_instance_uuid(), mac_address=generate_mac_address())


def read_public_key_line(path: Path) -> str:
    with path.open(encoding="utf-8") as handle:
        return handle.readline().strip()


def render_user_data(config: VMConfig, public_key: str) -> str:
    return textwrap.dedent(
        f"""\
        #cloud-config
        hostname: {config.hostname}
        fqdn: {config.fqdn}
        manage_etc_hosts: true
        users:
          - name: {config.username}
            sudo: ALL=(ALL) NOPASSWD:ALL
            homedir: /home/{config.username}
            shell: /bin/bash
            lock_passwd: true
            ssh-authorized-keys:
              - {public_key}
        ssh_pwauth: false
        """
    )


def render_network_config(config: VMConfig, mac_address: str) -> str:
    nameservers = ", ".join(config.dns_servers)
    return textwrap.dedent(
        f"""\
        version: 2
        ethernets:
          id0:
            match:
              macaddress: "{mac_address}"
            set-name: "{INTERFACE_NAME}"
            dhcp4: false
            addresses: [{config.ip}]
            gateway4: {config.gateway}
            nameservers:
              search: [{config.domain}]
              addresses: [{nameservers}]
        """
    )


def render_meta_data(identity: InstanceIdentity) -> str:
    return f"instance-id: {identity.instance_uuid}\n"


def render_launch_script(config: VMConfig, identity: InstanceIdentity) -> str:
    hostname = config.hostname
    vm_uuid = identity.instance_uuid
    return textwrap.dedent(
        f"""\
        #!/bin/sh

        # Check for presence of hard disk file as a sanity check
        if [ ! -f hd-{hostname}.img ]; then
            echo "ERROR: this start script must be run from the directory where" 1>&2
            echo "       the VM's files (e.g. hard disk image) are. Please cd" 1>&2
            echo "       to that directory and try again." 1>&2
            exit 1
        fi

        {HYPERVISOR_BINARY} \\
            -name {hostname} \\
            -uuid {vm_uuid} \\
            -drive file=hd-{hostname}.img,format=qcow2,if=virtio \\
            -drive file=meta-{hostname}.img,format=raw,if=virtio \\
            -m {config.ram_mb}M -smp {config.cpus} -enable-kvm -cpu host \\
            -net nic,model=virtio,macaddr={identity.mac_address} -net bridge,br={config.bridge} \\
            -display none -daemonize \\
            -chardev socket,id=char0,path={hostname}-serial,server=on,wait=off \\
            -serial chardev:char0 \\
            -chardev socket,id=char1,path={hostname}-mon,server=on,wait=off \\
            -monitor chardev:char1 \\
            -smbios type=1,serial={vm_uuid} \\
            -smbios type=2,serial={vm_uuid} \\
            -smbios type=1,uuid={vm_uuid}

        printf "VM starting. SSH to it at %s.\\n" "{config.connect_ip}"
        """
    )


def render_artifacts(config: VMConfig, identity: InstanceIdentity, public_key: str) -> VMArtifacts:
    return VMArtifacts(
        identity=identity,
        user_data=render_user_data(config, public_key),
        network_config=render_network_config(config, identity.mac_address),
        meta_data=render_meta_data(identity),
        launch_script=render_launch_script(config, identity),
    )


__all__ = [
    "VMArtifacts",
    "VMPaths",
    "generate_identity",
    "generate_instance_uuid",
    "generate_mac_address",
    "read_public_key_line",
    "render_artifacts",
    "render_launch_script",
    "render_meta_data",
    "render_network_config",
    "render_user_data",
]

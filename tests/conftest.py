from __future__ import annotations

from pathlib import Path

import pytest

from vm_provision.core.models import VMOptions

PUBLIC_KEY_LINE = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIHc4ZmFrZWtleWZvcnRlc3Rpbmdvbmx5 alice@workstation"


@pytest.fixture()
def pubkey_file(tmp_path: Path) -> Path:
    path = tmp_path / "id_ed25519.pub"
    path.write_text(f"{PUBLIC_KEY_LINE}\n", encoding="utf-8")
    return path


@pytest.fixture()
def valid_options(pubkey_file: Path) -> VMOptions:
    return VMOptions(
        hostname="testvm",
        domain="example.com",
        ip="192.168.1.50/24",
        gateway="192.168.1.1",
        dns="1.1.1.1 8.8.8.8",
        bridge="br0",
        username="alice",
        pubkey=str(pubkey_file),
        ram="2048",
        disk="20",
        cpus="2",
    )


@pytest.fixture()
def accept_any_key():
    return lambda path: True

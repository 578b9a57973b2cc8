"""Interactive QEMU/KVM virtual machine provisioning wizard."""

__version__ = "0.1.0"

"""Centralized exception hierarchy for vm-provision."""

from __future__ import annotations


class VMProvisionError(Exception):
    """Base exception for every fatal vm-provision error."""


class PrerequisiteError(VMProvisionError):
    """Raised when the host cannot run the wizard (architecture, KVM, missing tools)."""


class SelectionCancelled(VMProvisionError):
    """Raised when the operator cancels the distribution menu or the options form."""


class DownloadError(VMProvisionError):
    """Raised when a base image cannot be downloaded."""


class ProvisioningError(VMProvisionError):
    """Raised when a provisioning step (copy, resize, metadata disk) fails."""


class PreferencesError(VMProvisionError):
    """Raised when the preferences file cannot be written."""


__all__ = [
    "DownloadError",
    "PreferencesError",
    "PrerequisiteError",
    "ProvisioningError",
    "SelectionCancelled",
    "VMProvisionError",
]

"""Core provisioning logic for vm-provision."""

from vm_provision.core.catalog import CATALOG, CatalogEntry, select_distro
from vm_provision.core.exceptions import (
    DownloadError,
    PreferencesError,
    PrerequisiteError,
    ProvisioningError,
    SelectionCancelled,
    VMProvisionError,
)
from vm_provision.core.form_loop import FormOutcome, FormRenderer, FormState, OptionsFormLoop
from vm_provision.core.models import DistroSelection, FieldError, InstanceIdentity, VMConfig, VMOptions
from vm_provision.core.overrides import ResolvedOptions, resolve_overrides
from vm_provision.core.preferences import load_preferences, save_preferences
from vm_provision.core.validation import ValidationResult, validate_options

__all__ = [
    "CATALOG",
    "CatalogEntry",
    "DistroSelection",
    "DownloadError",
    "FieldError",
    "FormOutcome",
    "FormRenderer",
    "FormState",
    "InstanceIdentity",
    "OptionsFormLoop",
    "PreferencesError",
    "PrerequisiteError",
    "ProvisioningError",
    "ResolvedOptions",
    "SelectionCancelled",
    "VMConfig",
    "VMOptions",
    "VMProvisionError",
    "ValidationResult",
    "load_preferences",
    "resolve_overrides",
    "save_preferences",
    "select_distro",
    "validate_options",
]

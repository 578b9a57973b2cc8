"""End-to-end provisioning wizard tying the core stages to a UI."""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Protocol

import requests
import structlog

from vm_provision.core.artifacts import VMS_DIRNAME
from vm_provision.core.catalog import CatalogEntry, select_distro
from vm_provision.core.exceptions import SelectionCancelled, VMProvisionError
from vm_provision.core.form_loop import FormRenderer, OptionsFormLoop
from vm_provision.core.images import cached_image_path, ensure_image
from vm_provision.core.models import VMConfig
from vm_provision.core.overrides import resolve_overrides
from vm_provision.core.preferences import load_preferences, save_preferences
from vm_provision.core.prereqs import check_prerequisites
from vm_provision.core.provision import CommandRunner, ProvisionResult, default_runner, provision_vm
from vm_provision.core.validation import KeyChecker, ssh_keygen_accepts
from vm_provision.models import CreateOptions
from vm_provision.utils import configure_logging

LOGGER = structlog.get_logger(__name__)

RULE = "-" * 46


class WizardUI(FormRenderer, Protocol):
    def choose_distro(self, entries: Sequence[CatalogEntry]) -> CatalogEntry | None: ...

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def download_progress(self, downloaded: int, total: int | None) -> None: ...


def completion_message(config: VMConfig) -> str:
    return "\n".join(
        [
            "",
            RULE,
            "Your new VM is ready to go!",
            "",
            f"cd {VMS_DIRNAME}/{config.hostname}",
            f"Then start it with ./start-{config.hostname}.sh",
            "",
            "After the VM boots, you can connect with:",
            f"  ssh {config.username}@{config.connect_ip}",
            "",
            "(If necessary, point to your SSH private key with -i)",
            "",
            RULE,
        ]
    )


def default_ui(tui: bool) -> WizardUI:
    if tui:
        from vm_provision.textual_form import TextualUI

        return TextualUI()
    from vm_provision.prompts import QuestionaryUI

    return QuestionaryUI()


class ProvisionWizard:
    """Runs one provisioning session from prerequisites to the written preferences."""

    def __init__(
        self,
        options: CreateOptions,
        ui: WizardUI,
        *,
        environ: Mapping[str, str] | None = None,
        key_checker: KeyChecker = ssh_keygen_accepts,
        runner: CommandRunner = default_runner,
        prerequisites: Callable[[], None] = check_prerequisites,
        session: requests.Session | None = None,
    ) -> None:
        self.options = options
        self.ui = ui
        self.environ = os.environ if environ is None else environ
        self.key_checker = key_checker
        self.runner = runner
        self.prerequisites = prerequisites
        self.session = session

    @property
    def workdir(self) -> Path:
        return self.options.workdir

    def run(self) -> ProvisionResult:
        if self.options.skip_checks:
            LOGGER.debug("prerequisites-skipped")
        else:
            self.prerequisites()

        stored = load_preferences(self.workdir)
        resolved = resolve_overrides(stored, self.environ)

        selection = select_distro(resolved.image, self.workdir, self.ui.choose_distro)
        if not cached_image_path(selection, self.workdir).is_file():
            self.ui.info(f"Downloading {selection.image_filename}...")
        ensure_image(selection, self.workdir, session=self.session, progress=self.ui.download_progress)

        loop = OptionsFormLoop(self.ui, vms_dir=self.workdir / VMS_DIRNAME, key_checker=self.key_checker)
        outcome = loop.run(resolved)
        if not outcome.accepted or outcome.config is None:
            raise SelectionCancelled("options form canceled.")

        result = provision_vm(outcome.config, selection, self.workdir, runner=self.runner, report=self.ui.info)
        save_preferences(outcome.options, self.workdir)
        self.ui.success(completion_message(outcome.config))
        return result


def run_wizard(
    options: CreateOptions,
    *,
    ui: WizardUI | None = None,
    environ: Mapping[str, str] | None = None,
    key_checker: KeyChecker = ssh_keygen_accepts,
    runner: CommandRunner = default_runner,
    prerequisites: Callable[[], None] = check_prerequisites,
) -> int:
    configure_logging(options.verbose)
    wizard = ProvisionWizard(
        options,
        ui or default_ui(options.tui),
        environ=environ,
        key_checker=key_checker,
        runner=runner,
        prerequisites=prerequisites,
    )
    try:
        wizard.run()
    except VMProvisionError as exc:
        LOGGER.error("provision-failed", error=str(exc), kind=type(exc).__name__)
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


__all__ = ["ProvisionWizard", "WizardUI", "completion_message", "default_ui", "run_wizard"]

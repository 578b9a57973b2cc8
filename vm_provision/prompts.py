"""Questionary-based line prompts for the provisioning wizard."""

from __future__ import annotations

from collections.abc import Sequence

import questionary
from questionary import Choice

from vm_provision.core.catalog import CatalogEntry
from vm_provision.core.models import FIELD_LABELS, FIELD_ORDER, FieldError, VMOptions


class WizardAbort(RuntimeError):
    """Raised when the user aborts a Questionary prompt."""


_LABEL_WIDTH = max(len(label) for label in FIELD_LABELS.values())


def ask_text(message: str, *, default: str | None = None) -> str:
    """Prompt for a text value and return it untrimmed."""

    response = questionary.text(message, default=default or "").ask()
    if response is None:
        raise WizardAbort()
    return response


def ask_choice(message: str, choices: Sequence[Choice]) -> str:
    response = questionary.select(message, choices=list(choices)).ask()
    if response is None:
        raise WizardAbort()
    return str(response)


def acknowledge(title: str, messages: Sequence[str]) -> None:
    """Print ``messages`` and wait for a key press."""

    questionary.print(title, style="bold red")
    for message in messages:
        questionary.print(f"  {message}", style="red")
    questionary.press_any_key_to_continue("Press any key to return to the form...").ask()


def field_prompt(name: str) -> str:
    return f"{FIELD_LABELS[name].rjust(_LABEL_WIDTH)}:"


def print_progress(downloaded: int, total: int | None) -> None:
    """Redraw a single download progress line, ending it once complete."""

    downloaded_mb = downloaded / (1024 * 1024)
    if total:
        pct = downloaded * 100 / total
        line = f"\r  {pct:5.1f}% {downloaded_mb:.1f}/{total / (1024 * 1024):.1f} MiB"
    else:
        line = f"\r  {downloaded_mb:.1f} MiB downloaded"
    done = total is not None and downloaded >= total
    print(line, end="\n" if done else "", flush=True)


class QuestionaryUI:
    """Line-oriented wizard UI; Ctrl-C at any prompt cancels the current step."""

    def present(self, options: VMOptions) -> VMOptions | None:
        questionary.print("Please provide the following parameters for the new VM:", style="bold")
        values: dict[str, str] = {}
        try:
            for name in FIELD_ORDER:
                values[name] = ask_text(field_prompt(name), default=getattr(options, name))
        except WizardAbort:
            return None
        return VMOptions(**values)

    def show_errors(self, errors: Sequence[FieldError]) -> None:
        acknowledge("Validation Error", [error.message for error in errors])

    def choose_distro(self, entries: Sequence[CatalogEntry]) -> CatalogEntry | None:
        by_key = {entry.key: entry for entry in entries}
        choices = [Choice(title=entry.label, value=entry.key) for entry in entries]
        try:
            key = ask_choice("Select a Linux distribution for the new VM:", choices)
        except WizardAbort:
            return None
        return by_key.get(key)

    def info(self, message: str) -> None:
        questionary.print(message)

    def success(self, message: str) -> None:
        questionary.print(message, style="bold green")

    def download_progress(self, downloaded: int, total: int | None) -> None:
        print_progress(downloaded, total)


__all__ = ["QuestionaryUI", "WizardAbort", "acknowledge", "ask_choice", "ask_text", "field_prompt", "print_progress"]

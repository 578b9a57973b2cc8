"""Textual full-screen renderer for the provisioning wizard.

Each interaction runs as its own short-lived Textual application so that the
wizard keeps driving the flow synchronously, the same way the Questionary
renderer does. Download progress and step messages are written to the
terminal between applications.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, ClassVar

import questionary
from textual.app import App
from textual.binding import BindingType
from textual.containers import Center, Horizontal, Vertical, VerticalScroll
from textual.widgets import Button, Footer, Header, Input, OptionList, Static
from textual.widgets.option_list import Option

from vm_provision.core.catalog import CatalogEntry
from vm_provision.core.models import FIELD_LABELS, FIELD_ORDER, FieldError, VMOptions
from vm_provision.prompts import print_progress
from vm_provision.textual_widgets import FormField, field_validators

if TYPE_CHECKING:
    from textual.app import ComposeResult
else:
    from collections.abc import Generator as ComposeResult


_CSS = """
Screen {
    background: $surface;
}
.title {
    text-align: center;
    text-style: bold;
    color: $primary;
}
.error {
    color: $error;
    text-style: bold;
}
.info {
    text-align: center;
    color: $text-muted;
}
#buttons {
    height: auto;
    align: center middle;
}
"""


class OptionsFormApp(App[VMOptions | None]):
    """Form with one input per VM option.

    Exits with the raw (untrimmed) values on OK, or ``None`` on cancel.
    """

    CSS = _CSS

    BINDINGS: ClassVar[list[BindingType]] = [
        ("ctrl+s", "submit", "OK"),
        ("escape", "cancel", "Cancel"),
        ("ctrl+c", "cancel", "Cancel"),
    ]

    def __init__(self, options: VMOptions) -> None:
        super().__init__()
        self.options = options

    def compose(self) -> ComposeResult:
        yield Header()
        with VerticalScroll():
            yield Static("Please provide the following parameters for the new VM", classes="title")
            for name in FIELD_ORDER:
                yield FormField(
                    FIELD_LABELS[name],
                    Input(value=getattr(self.options, name), id=f"field-{name}", validators=field_validators(name)),
                )
            with Horizontal(id="buttons"):
                yield Button("OK", id="ok_button", variant="primary")
                yield Button("Cancel", id="cancel_button", variant="default")
        yield Footer()

    def collect(self) -> VMOptions:
        values = {name: self.query_one(f"#field-{name}", Input).value for name in FIELD_ORDER}
        return VMOptions(**values)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.action_submit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "ok_button":
            self.action_submit()
        elif event.button.id == "cancel_button":
            self.action_cancel()

    def action_submit(self) -> None:
        self.exit(self.collect())

    def action_cancel(self) -> None:
        self.exit(None)


class MessageApp(App[None]):
    """Blocking message box dismissed with OK, Enter or Escape."""

    CSS = _CSS

    BINDINGS: ClassVar[list[BindingType]] = [
        ("enter", "dismiss_message", "OK"),
        ("escape", "dismiss_message", "OK"),
    ]

    def __init__(self, title: str, messages: Sequence[str], *, error: bool = True) -> None:
        super().__init__()
        self.title_text = title
        self.messages = tuple(messages)
        self.error = error

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical():
            yield Center(Static(self.title_text, classes="title"))
            for message in self.messages:
                yield Static(message, classes="error" if self.error else "info")
            with Horizontal(id="buttons"):
                yield Button("OK", id="ok_button", variant="primary")
        yield Footer()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.action_dismiss_message()

    def action_dismiss_message(self) -> None:
        self.exit(None)


class DistroSelectApp(App[str | None]):
    """Menu of catalog entries; exits with the chosen key or ``None``."""

    CSS = _CSS

    BINDINGS: ClassVar[list[BindingType]] = [
        ("escape", "cancel", "Cancel"),
        ("ctrl+c", "cancel", "Cancel"),
    ]

    def __init__(self, entries: Sequence[CatalogEntry]) -> None:
        super().__init__()
        self.entries = tuple(entries)

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical():
            yield Static("Select a Linux distribution for the new VM", classes="title")
            yield OptionList(*(Option(f"{entry.key})  {entry.label}", id=entry.key) for entry in self.entries))
            yield Static("Enter to select, Escape to cancel", classes="info")
        yield Footer()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.exit(event.option.id)

    def action_cancel(self) -> None:
        self.exit(None)


class TextualUI:
    """Wizard UI that renders the form, errors and menu as Textual screens."""

    def present(self, options: VMOptions) -> VMOptions | None:
        return OptionsFormApp(options).run()

    def show_errors(self, errors: Sequence[FieldError]) -> None:
        MessageApp("Validation Error", [error.message for error in errors]).run()

    def choose_distro(self, entries: Sequence[CatalogEntry]) -> CatalogEntry | None:
        key = DistroSelectApp(entries).run()
        if key is None:
            return None
        return next((entry for entry in entries if entry.key == key), None)

    def info(self, message: str) -> None:
        questionary.print(message)

    def success(self, message: str) -> None:
        questionary.print(message, style="bold green")

    def download_progress(self, downloaded: int, total: int | None) -> None:
        print_progress(downloaded, total)


__all__ = ["DistroSelectApp", "MessageApp", "OptionsFormApp", "TextualUI"]

"""Textual widgets and inline validators for the full-screen options form.

The inline validators only highlight obviously wrong input while typing. The
authoritative checks still run in the form loop after the form is submitted.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from textual.containers import Horizontal
from textual.validation import ValidationResult, Validator
from textual.widgets import Input, Label

from vm_provision.core.validation import (
    DOMAIN_RE,
    HOSTNAME_RE,
    USERNAME_RE,
    is_ipv4,
    is_ipv4_cidr,
    parse_dns_servers,
    parse_minimum_int,
)

if TYPE_CHECKING:
    from typing import Any


class RequiredValidator(Validator):
    """Validator that requires non-empty input."""

    def validate(self, value: str) -> ValidationResult:
        """Validate that the input is not empty.

        Args:
            value: The input value to validate.

        Returns:
            ValidationResult indicating success or failure.
        """
        if value.strip():
            return self.success()
        return self.failure("This field is required")


class PatternValidator(Validator):
    """Validator matching the whole trimmed value against a regular expression."""

    def __init__(self, pattern: re.Pattern[str], message: str) -> None:
        super().__init__()
        self.pattern = pattern
        self.message = message

    def validate(self, value: str) -> ValidationResult:
        if self.pattern.fullmatch(value.strip()):
            return self.success()
        return self.failure(self.message)


class IPv4Validator(Validator):
    """Validator for dotted-quad IPv4 addresses, optionally with a prefix length."""

    def __init__(self, allow_prefix: bool = False) -> None:
        """Initialize the IPv4 validator.

        Args:
            allow_prefix: Accept a trailing ``/prefixlen``.
        """
        super().__init__()
        self.allow_prefix = allow_prefix

    def validate(self, value: str) -> ValidationResult:
        candidate = value.strip()
        valid = is_ipv4_cidr(candidate) if self.allow_prefix else is_ipv4(candidate)
        if valid:
            return self.success()
        suffix = " or '1.2.3.4/24'" if self.allow_prefix else ""
        return self.failure(f"Must be an IPv4 address like '1.2.3.4'{suffix}")


class DNSServersValidator(Validator):
    """Validator for one or two space separated IPv4 addresses."""

    def validate(self, value: str) -> ValidationResult:
        if parse_dns_servers(value.strip()) is not None:
            return self.success()
        return self.failure("Must be one or two space separated IPv4 addresses")


class IntegerValidator(Validator):
    """Validator for integer input with a lower bound."""

    def __init__(self, min_value: int = 1) -> None:
        """Initialize the integer validator.

        Args:
            min_value: Minimum allowed value (default 1).
        """
        super().__init__()
        self.min_value = min_value

    def validate(self, value: str) -> ValidationResult:
        """Validate integer input.

        Args:
            value: The input value to validate.

        Returns:
            ValidationResult indicating success or failure.
        """
        if not value.strip():
            return self.failure("This field is required")
        if parse_minimum_int(value.strip(), self.min_value) is None:
            return self.failure(f"Must be a number {self.min_value} or larger")
        return self.success()


def field_validators(name: str) -> list[Validator]:
    """Return the inline validators for a form field."""

    if name == "hostname":
        return [PatternValidator(HOSTNAME_RE, "Letters, numbers and '-' only; may not start with '-'")]
    if name == "domain":
        return [PatternValidator(DOMAIN_RE, "Letters, numbers, '-' and '.' only")]
    if name == "ip":
        return [IPv4Validator(allow_prefix=True)]
    if name == "gateway":
        return [IPv4Validator()]
    if name == "dns":
        return [DNSServersValidator()]
    if name == "username":
        return [PatternValidator(USERNAME_RE, "Must start with a letter; letters, numbers and '-' only")]
    if name == "ram":
        return [IntegerValidator(min_value=256)]
    if name in {"disk", "cpus"}:
        return [IntegerValidator(min_value=1)]
    return [RequiredValidator()]


class FormField(Horizontal):
    """A label and an input laid out on one row."""

    DEFAULT_CSS = """
    FormField {
        height: auto;
    }
    FormField > Label {
        width: 20;
        padding: 1 1 0 0;
        text-align: right;
    }
    FormField > Input {
        width: 1fr;
    }
    """

    def __init__(self, label: str, input_widget: Input, **kwargs: Any) -> None:
        """Initialize the form field.

        Args:
            label: Text shown to the left of the input.
            input_widget: The input collecting the value.
            **kwargs: Additional arguments passed to Horizontal.
        """
        super().__init__(**kwargs)
        self.label_text = label
        self.input_widget = input_widget

    def compose(self):  # type: ignore[override]
        yield Label(f"{self.label_text}:")
        yield self.input_widget


__all__ = [
    "DNSServersValidator",
    "FormField",
    "IPv4Validator",
    "IntegerValidator",
    "PatternValidator",
    "RequiredValidator",
    "field_validators",
]

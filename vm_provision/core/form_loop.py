"""State machine driving the options form until the values validate."""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel, ConfigDict

from vm_provision.core.models import FieldError, VMConfig, VMOptions
from vm_provision.core.overrides import ResolvedOptions
from vm_provision.core.validation import KeyChecker, ssh_keygen_accepts, validate_options

LOGGER = structlog.get_logger(__name__)


class FormState(StrEnum):
    PRESENTING = "presenting"
    VALIDATING = "validating"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({FormState.ACCEPTED, FormState.CANCELLED})


class FormRenderer(Protocol):
    """Presentation capability used by the loop."""

    def present(self, options: VMOptions) -> VMOptions | None:
        """Show ``options`` for editing; return the edited record or None when cancelled."""
        ...

    def show_errors(self, errors: Sequence[FieldError]) -> None:
        """Display validation errors and block until the operator acknowledges them."""
        ...


class FormOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: FormState
    options: VMOptions
    config: VMConfig | None = None
    presentations: int = 0
    history: tuple[FormState, ...] = ()

    @property
    def accepted(self) -> bool:
        return self.state is FormState.ACCEPTED


class OptionsFormLoop:
    """Presenting -> Validating -> (Presenting | Accepted), or Cancelled from Presenting.

    There is no retry limit; the loop only ends when the values validate or the
    operator cancels the form.
    """

    def __init__(
        self,
        renderer: FormRenderer,
        *,
        vms_dir: Path,
        key_checker: KeyChecker = ssh_keygen_accepts,
    ) -> None:
        self.renderer = renderer
        self.vms_dir = vms_dir
        self.key_checker = key_checker

    def run(self, resolved: ResolvedOptions) -> FormOutcome:
        current = resolved.options
        config: VMConfig | None = None
        presentations = 0
        # Values supplied entirely through the environment are validated without
        # showing the form; a failure falls back to the interactive path.
        state = FormState.VALIDATING if resolved.fully_supplied else FormState.PRESENTING
        history: list[FormState] = [state]

        while state not in TERMINAL_STATES:
            if state is FormState.PRESENTING:
                presentations += 1
                edited = self.renderer.present(current)
                if edited is None:
                    state = FormState.CANCELLED
                else:
                    current = edited
                    state = FormState.VALIDATING
            else:
                result = validate_options(current, vms_dir=self.vms_dir, key_checker=self.key_checker)
                current = result.options
                if result.config is not None:
                    config = result.config
                    state = FormState.ACCEPTED
                else:
                    LOGGER.info("validation-failed", fields=[error.field for error in result.errors])
                    self.renderer.show_errors(result.errors)
                    state = FormState.PRESENTING
            history.append(state)

        LOGGER.debug("form-finished", state=str(state), presentations=presentations)
        return FormOutcome(
            state=state,
            options=current,
            config=config,
            presentations=presentations,
            history=tuple(history),
        )


__all__ = ["FormOutcome", "FormRenderer", "FormState", "OptionsFormLoop"]

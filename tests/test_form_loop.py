from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from vm_provision.core.form_loop import FormState, OptionsFormLoop
from vm_provision.core.models import FIELD_ORDER, FieldError, VMOptions
from vm_provision.core.overrides import FIELD_ENV_VARS, ResolvedOptions, resolve_overrides
from vm_provision.core.validation import IP_MESSAGE


class ScriptedRenderer:
    """Replays a fixed list of form submissions; ``None`` cancels."""

    def __init__(self, submissions: Sequence[VMOptions | None]) -> None:
        self.submissions = list(submissions)
        self.presented: list[VMOptions] = []
        self.errors: list[list[FieldError]] = []

    def present(self, options: VMOptions) -> VMOptions | None:
        self.presented.append(options)
        return self.submissions.pop(0)

    def show_errors(self, errors: Sequence[FieldError]) -> None:
        self.errors.append(list(errors))


def _loop(renderer: ScriptedRenderer, tmp_path: Path) -> OptionsFormLoop:
    return OptionsFormLoop(renderer, vms_dir=tmp_path / "vms", key_checker=lambda path: True)


def test_fully_supplied_environment_skips_the_form(tmp_path: Path, valid_options: VMOptions) -> None:
    environ = {FIELD_ENV_VARS[name]: getattr(valid_options, name) for name in FIELD_ORDER}
    resolved = resolve_overrides(VMOptions(), environ)
    renderer = ScriptedRenderer([])

    outcome = _loop(renderer, tmp_path).run(resolved)

    assert outcome.accepted
    assert outcome.presentations == 0
    assert renderer.presented == []
    assert outcome.history == (FormState.VALIDATING, FormState.ACCEPTED)
    assert outcome.config is not None
    assert outcome.config.hostname == "testvm"


def test_invalid_environment_falls_back_to_form(tmp_path: Path, valid_options: VMOptions) -> None:
    environ = {FIELD_ENV_VARS[name]: getattr(valid_options, name) for name in FIELD_ORDER}
    environ["VM_PROVISION_IP"] = "300.1.1.1"
    resolved = resolve_overrides(VMOptions(), environ)
    renderer = ScriptedRenderer([valid_options])

    outcome = _loop(renderer, tmp_path).run(resolved)

    assert outcome.accepted
    assert outcome.presentations == 1
    assert renderer.presented[0].ip == "300.1.1.1"
    assert renderer.errors == [[FieldError(field="ip", message=IP_MESSAGE)]]


def test_partial_defaults_always_present_the_form(tmp_path: Path, valid_options: VMOptions) -> None:
    renderer = ScriptedRenderer([valid_options])

    outcome = _loop(renderer, tmp_path).run(ResolvedOptions(options=VMOptions(bridge="br0")))

    assert outcome.accepted
    assert outcome.presentations == 1
    assert renderer.presented == [VMOptions(bridge="br0")]
    assert renderer.errors == []


def test_one_invalid_submission_then_fix(tmp_path: Path, valid_options: VMOptions) -> None:
    bad = valid_options.model_copy(update={"ip": "300.1.1.1", "hostname": "  testvm  "})
    renderer = ScriptedRenderer([bad, valid_options])

    outcome = _loop(renderer, tmp_path).run(ResolvedOptions(options=valid_options))

    assert outcome.accepted
    assert outcome.presentations == 2
    assert len(renderer.errors) == 1
    # The form is re-shown with the trimmed values, other fields unchanged.
    assert renderer.presented[1].hostname == "testvm"
    assert renderer.presented[1].ip == "300.1.1.1"
    assert renderer.presented[1].dns == valid_options.dns
    assert outcome.history == (
        FormState.PRESENTING,
        FormState.VALIDATING,
        FormState.PRESENTING,
        FormState.VALIDATING,
        FormState.ACCEPTED,
    )


def test_cancel_ends_the_loop(tmp_path: Path, valid_options: VMOptions) -> None:
    renderer = ScriptedRenderer([None])

    outcome = _loop(renderer, tmp_path).run(ResolvedOptions(options=valid_options))

    assert outcome.state is FormState.CANCELLED
    assert not outcome.accepted
    assert outcome.config is None
    assert outcome.options == valid_options


def test_cancel_after_errors_keeps_last_values(tmp_path: Path, valid_options: VMOptions) -> None:
    bad = valid_options.model_copy(update={"ram": "12"})
    renderer = ScriptedRenderer([bad, None])

    outcome = _loop(renderer, tmp_path).run(ResolvedOptions(options=valid_options))

    assert outcome.state is FormState.CANCELLED
    assert outcome.presentations == 2
    assert outcome.options.ram == "12"

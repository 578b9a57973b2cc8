from __future__ import annotations

import sys
from pathlib import Path

import pytest
from _pytest.monkeypatch import MonkeyPatch
from typer.testing import CliRunner

from vm_provision.app import app
from vm_provision.core.catalog import CATALOG
from vm_provision.models import CreateOptions

cli_module = sys.modules["vm_provision.app"]


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "configure_logging", lambda verbose=False: None)


def test_create_options_resolve_workdir(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))

    options = CreateOptions(workdir=Path("~/vms-here"))

    assert options.workdir == (tmp_path / "vms-here").resolve()
    assert options.tui is False
    assert options.skip_checks is False


def test_cli_create_invokes_wizard(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    runner = CliRunner()
    called: dict[str, CreateOptions] = {}

    def fake_run_wizard(options: CreateOptions) -> int:
        called["options"] = options
        return 0

    monkeypatch.setattr(cli_module, "run_wizard", fake_run_wizard)
    result = runner.invoke(app, ["create", "--workdir", str(tmp_path), "--tui", "--skip-checks"])

    assert result.exit_code == 0
    options = called["options"]
    assert options.workdir == tmp_path.resolve()
    assert options.tui is True
    assert options.skip_checks is True
    assert options.verbose is False


def test_cli_create_propagates_exit_code(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(cli_module, "run_wizard", lambda options: 1)

    result = CliRunner().invoke(app, ["create", "-w", str(tmp_path)])

    assert result.exit_code == 1


def test_cli_distros_lists_catalog() -> None:
    result = CliRunner().invoke(app, ["distros"])

    assert result.exit_code == 0
    for entry in CATALOG:
        assert entry.label in result.output
    assert CATALOG[0].download_url in result.output


def test_global_verbose_flag_reaches_create(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    called: dict[str, CreateOptions] = {}

    def fake_run_wizard(options: CreateOptions) -> int:
        called["options"] = options
        return 0

    monkeypatch.setattr(cli_module, "run_wizard", fake_run_wizard)
    result = CliRunner().invoke(app, ["-v", "create", "--workdir", str(tmp_path)])

    assert result.exit_code == 0
    assert called["options"].verbose is True

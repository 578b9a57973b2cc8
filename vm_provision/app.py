"""Typer CLI entrypoints for vm-provision."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from typer import Option

from vm_provision.core.catalog import CATALOG
from vm_provision.models import CreateOptions
from vm_provision.utils import configure_logging
from vm_provision.wizard import run_wizard

app = typer.Typer(help="Provision local QEMU/KVM virtual machines from cloud images")


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[bool, Option("--verbose", "-v", help="Enable verbose logging globally")] = False,
) -> None:
    ctx.obj = {"verbose": verbose}
    configure_logging(verbose)


def _global_verbose(ctx: typer.Context) -> bool:
    return bool(ctx.obj and ctx.obj.get("verbose"))


@app.command("create", help="Run the wizard and generate a new VM under vms/")
def create(
    ctx: typer.Context,
    workdir: Annotated[
        str | None,
        Option("--workdir", "-w", help="Directory holding images/, vms/ and the preferences file"),
    ] = None,
    tui: Annotated[bool, Option("--tui", help="Use the Textual full-screen form")] = False,
    skip_checks: Annotated[
        bool, Option("--skip-checks", help="Skip the hardware and required tool checks")
    ] = False,
    verbose: Annotated[bool, Option("--verbose", help="Verbose logging for this run")] = False,
) -> None:
    options = CreateOptions(
        workdir=Path(workdir) if workdir else Path.cwd(),
        tui=tui,
        skip_checks=skip_checks,
        verbose=verbose or _global_verbose(ctx),
    )
    exit_code = run_wizard(options)
    raise typer.Exit(code=exit_code)


@app.command("distros", help="List the distributions offered by the catalog")
def distros() -> None:
    for entry in CATALOG:
        typer.echo(f"{entry.key}) {entry.label:<20} {entry.download_url}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

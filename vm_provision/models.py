"""Pydantic models for Typer CLI options."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _BaseOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    verbose: bool = False


def _expand_workdir(value: str | Path) -> Path:
    path = Path(value)
    return path.expanduser().resolve()


class CreateOptions(_BaseOptions):
    workdir: Path = Field(default_factory=Path.cwd)
    tui: bool = False
    skip_checks: bool = False

    _validate_workdir = field_validator("workdir", mode="before")(_expand_workdir)

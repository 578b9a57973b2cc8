"""Helpers for running the external tools the provisioner depends on."""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Sequence

import structlog
from pydantic import BaseModel, ConfigDict

logger = structlog.get_logger(__name__)


class CommandExecutionError(RuntimeError):
    """Raised when an external command exits non-zero or cannot be started."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class CommandResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    stdout: str
    stderr: str
    returncode: int


def shlex_join(parts: Sequence[str]) -> str:
    return " ".join(shlex.quote(part) for part in parts)


def run_command(command: Sequence[str], *, check: bool = True) -> CommandResult:
    """Run ``command`` synchronously and return its captured output."""

    logger.debug("command-exec", command=shlex_join(command))
    try:
        completed = subprocess.run(list(command), capture_output=True, text=True, check=False)
    except OSError as exc:
        raise CommandExecutionError(f"Unable to run {command[0]}: {exc}") from exc
    stdout_text = completed.stdout or ""
    stderr_text = completed.stderr or ""
    if check and completed.returncode != 0:
        raise CommandExecutionError(
            f"Command failed ({completed.returncode}): {shlex_join(command)}\n{stderr_text.strip()}".rstrip(),
            returncode=completed.returncode,
            stderr=stderr_text,
        )
    return CommandResult(stdout=stdout_text, stderr=stderr_text, returncode=completed.returncode)

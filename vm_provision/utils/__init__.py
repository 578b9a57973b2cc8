"""Utility modules for vm-provision."""

from vm_provision.utils.commands import CommandExecutionError, CommandResult, run_command, shlex_join
from vm_provision.utils.logging import configure_logging

__all__ = [
    "CommandExecutionError",
    "CommandResult",
    "configure_logging",
    "run_command",
    "shlex_join",
]

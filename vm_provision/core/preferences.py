"""Persisted defaults for the options form.

The last accepted options are stored as a small versioned TOML document in the
work directory::

    version = 1

    [options]
    hostname = "web01"
    ...

Every field falls back to its first-run default on its own, so a truncated or
hand-edited file still yields a complete record. The ``^^``-delimited ``.prefs``
file written by the older shell tool is read when no TOML file exists.
"""

from __future__ import annotations

import getpass
import os
import tempfile
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

import structlog
import tomli_w

from vm_provision.core.exceptions import PreferencesError
from vm_provision.core.models import FIELD_ORDER, VMOptions

LOGGER = structlog.get_logger(__name__)

PREFERENCES_FILENAME = ".vm-provision.toml"
LEGACY_PREFERENCES_FILENAME = ".prefs"
LEGACY_SEPARATOR = "^^"
PREFERENCES_VERSION = 1

DEFAULT_BRIDGE = "br0"
DEFAULT_RAM_MB = "4096"
DEFAULT_DISK_GB = "16"
DEFAULT_CPUS = "1"
_PUBKEY_CANDIDATES = ("id_ed25519.pub", "id_rsa.pub")


def _invoking_user() -> str:
    user = os.environ.get("USER")
    if user:
        return user
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


def find_default_pubkey(home: Path | None = None) -> str:
    ssh_dir = (home if home is not None else Path.home()) / ".ssh"
    for candidate in _PUBKEY_CANDIDATES:
        path = ssh_dir / candidate
        if path.is_file():
            return str(path)
    return ""


def first_run_defaults(*, home: Path | None = None, user: str | None = None) -> VMOptions:
    return VMOptions(
        bridge=DEFAULT_BRIDGE,
        username=_invoking_user() if user is None else user,
        pubkey=find_default_pubkey(home),
        ram=DEFAULT_RAM_MB,
        disk=DEFAULT_DISK_GB,
        cpus=DEFAULT_CPUS,
    )


def preferences_path(workdir: Path) -> Path:
    return workdir / PREFERENCES_FILENAME


def _read_toml(path: Path) -> dict[str, str]:
    try:
        with path.open("rb") as handle:
            raw: Any = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        LOGGER.warning("preferences-unreadable", path=str(path), error=str(exc))
        return {}

    version = raw.get("version")
    if isinstance(version, int) and version > PREFERENCES_VERSION:
        LOGGER.warning("preferences-newer-version", path=str(path), version=version)

    section = raw.get("options")
    if not isinstance(section, dict):
        return {}
    values: dict[str, str] = {}
    for key, value in cast(dict[str, Any], section).items():
        if key not in FIELD_ORDER:
            continue
        if isinstance(value, bool):
            continue
        if isinstance(value, (str, int)):
            values[key] = str(value)
    return values


def _read_legacy(path: Path) -> dict[str, str]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        LOGGER.warning("preferences-unreadable", path=str(path), error=str(exc))
        return {}
    lines = text.splitlines()
    if not lines:
        return {}
    parts = lines[0].split(LEGACY_SEPARATOR)
    return {name: value for name, value in zip(FIELD_ORDER, parts)}


def merge_with_defaults(stored: Mapping[str, str], defaults: VMOptions) -> VMOptions:
    """Take each stored value that is non-empty, otherwise the default for that field."""

    merged = {name: stored.get(name) or getattr(defaults, name) for name in FIELD_ORDER}
    return VMOptions(**merged)


def load_preferences(workdir: Path, *, defaults: VMOptions | None = None) -> VMOptions:
    base = defaults if defaults is not None else first_run_defaults()
    path = preferences_path(workdir)
    legacy_path = workdir / LEGACY_PREFERENCES_FILENAME
    if path.exists():
        stored = _read_toml(path)
        source = path
    elif legacy_path.exists():
        stored = _read_legacy(legacy_path)
        source = legacy_path
    else:
        LOGGER.debug("preferences-missing", path=str(path))
        return base
    LOGGER.debug("preferences-loaded", path=str(source), fields=sorted(stored))
    return merge_with_defaults(stored, base)


def preferences_to_dict(options: VMOptions) -> dict[str, Any]:
    return {
        "version": PREFERENCES_VERSION,
        "options": {name: getattr(options, name) for name in FIELD_ORDER},
    }


def save_preferences(options: VMOptions, workdir: Path) -> Path:
    """Replace the preferences file with ``options``."""

    path = preferences_path(workdir)
    payload = tomli_w.dumps(preferences_to_dict(options))
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=str(path.parent), delete=False) as handle:
            handle.write(payload)
            temp_name = Path(handle.name)
        os.replace(temp_name, path)
    except OSError as exc:
        raise PreferencesError(f"Unable to write preferences to {path}: {exc}") from exc
    LOGGER.info("preferences-saved", path=str(path))
    return path


__all__ = [
    "DEFAULT_BRIDGE",
    "PREFERENCES_FILENAME",
    "find_default_pubkey",
    "first_run_defaults",
    "load_preferences",
    "merge_with_defaults",
    "preferences_path",
    "save_preferences",
]

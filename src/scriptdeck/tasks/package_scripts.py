# src/scriptdeck/tasks/package_scripts.py

from __future__ import annotations

"""
Default task source for JavaScript projects.

- PackageScriptsProvider reads the "scripts" section of package.json
- resolve_command picks the package manager used as `<pm> run <script>`
"""

import json
import logging
import shutil
from collections.abc import Callable, Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"

# (lockfile, executable) in preference order; npm is the fallback.
_LOCKFILE_MANAGERS = (
    ("yarn.lock", "yarn"),
    ("pnpm-lock.yaml", "pnpm"),
)


class PackageScriptsProvider:
    """
    CommandProvider reading `<project_dir>/package.json`.

    Missing manifest or missing "scripts" section -> None (nothing to sync).
    Unreadable or malformed manifest -> the error propagates; the registry
    treats it as a provider failure and keeps its last known list.
    """

    def __init__(self, manifest_name: str = MANIFEST_NAME) -> None:
        self._manifest_name = manifest_name

    def read_commands(self, project_dir: str) -> Mapping[str, str] | None:
        path = Path(project_dir) / self._manifest_name
        if not path.is_file():
            logger.debug("No %s in %s", self._manifest_name, project_dir)
            return None

        data = json.loads(path.read_text("utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object")

        scripts = data.get("scripts")
        if scripts is None:
            return None
        if not isinstance(scripts, dict):
            raise ValueError(f"{path}: \"scripts\" must be an object")

        return {str(name): str(command) for name, command in scripts.items()}


def resolve_command(
        project_dir: str,
        preferred: str = "",
        *,
        which: Callable[[str], str | None] = shutil.which,
) -> str:
    """
    Pick the executable for `<executable> run <task>`.

    An explicit preference wins. Otherwise the lockfile in the project decides,
    as long as that package manager is installed; npm is the fallback.
    """
    preferred = (preferred or "").strip()
    if preferred:
        return preferred

    root = Path(project_dir)
    for lockfile, executable in _LOCKFILE_MANAGERS:
        if (root / lockfile).exists() and which(executable):
            return executable
    return "npm"


def make_resolver(preferred: str = "") -> Callable[[str], str]:
    def _resolve(project_dir: str) -> str:
        return resolve_command(project_dir, preferred)

    return _resolve

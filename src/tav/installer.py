# installer.py
from __future__ import annotations

import importlib
import importlib.metadata
import re
import subprocess
import sys
from enum import Enum
from typing import Callable, List, Optional, Sequence

from packaging.version import InvalidVersion, Version

from .errors import InstallError
from .model import InstallRequest
from .ui.console import Console, get_console

MAX_INSTALL_ATTEMPTS = 10

# Package managers from this major version on prune whatever is not declared,
# so reusing an existing install is not safe there.
FORCE_INSTALL_FROM_MAJOR = 5


class InstallMode(str, Enum):
    FORCE = "force"          # reinstall everything, every time
    SELECTIVE = "selective"  # skip requests that are already satisfied


# ----------------------------------------------------------------------
# pip primitives
# ----------------------------------------------------------------------

def pip_version(python: str = sys.executable) -> Optional[Version]:
    """Version of pip for `python`, or None if it cannot be determined."""
    try:
        out = subprocess.check_output(
            [python, "-m", "pip", "--version"],
            text=True,
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    # "pip 24.0 from /usr/lib/python3/site-packages/pip (python 3.12)"
    m = re.search(r"pip\s+(\S+)", out)
    if not m:
        return None
    try:
        return Version(m.group(1))
    except InvalidVersion:
        return None


def detect_install_mode(python: str = sys.executable) -> InstallMode:
    version = pip_version(python)
    if version is None or version.major >= FORCE_INSTALL_FROM_MAJOR:
        return InstallMode.FORCE
    return InstallMode.SELECTIVE


def pip_install(requirements: Sequence[str], *, python: str = sys.executable, quiet: bool = False) -> int:
    """Install requirements into `python`'s environment. Returns pip's exit code."""
    cmd = [python, "-m", "pip", "install", "--disable-pip-version-check"]
    if quiet:
        cmd.append("-q")
    cmd.extend(requirements)
    return subprocess.run(cmd, check=False).returncode


def installed_version(name: str) -> Optional[str]:
    """Currently installed version of distribution `name`, read fresh from disk."""
    importlib.invalidate_caches()
    try:
        return importlib.metadata.version(name)
    except importlib.metadata.PackageNotFoundError:
        return None


# ----------------------------------------------------------------------
# Installer
# ----------------------------------------------------------------------

class DependencyInstaller:
    """Makes sure a set of packages is installed before a test run."""

    def __init__(
        self,
        mode: InstallMode,
        *,
        python: str = sys.executable,
        quiet: bool = False,
        install_fn: Optional[Callable[[List[str]], int]] = None,
        lookup_fn: Callable[[str], Optional[str]] = installed_version,
        max_attempts: int = MAX_INSTALL_ATTEMPTS,
        console: Optional[Console] = None,
    ):
        self.mode = InstallMode(mode)
        self.python = python
        self.quiet = quiet
        self.install_fn = install_fn
        self.lookup_fn = lookup_fn
        self.max_attempts = max_attempts
        self.console = console or get_console()

    def ensure(self, requests: Sequence[InstallRequest]) -> None:
        """
        Install whatever in `requests` is missing.

        Raises:
            InstallError: if pip still fails after max_attempts
        """
        if self.mode is InstallMode.FORCE:
            pending = list(requests)
        else:
            pending = [r for r in requests if not self._is_satisfied(r)]

        if not pending:
            return
        self._attempt_install([r.to_requirement() for r in pending])

    def _is_satisfied(self, request: InstallRequest) -> bool:
        version = self.lookup_fn(request.name)
        if version is not None and request.version_range.contains(version):
            self.console.print_info(f"reusing already installed {request}")
            return True
        return False

    def _run_install(self, requirements: List[str]) -> int:
        if self.install_fn is not None:
            return self.install_fn(requirements)
        return pip_install(requirements, python=self.python, quiet=self.quiet)

    def _attempt_install(self, requirements: List[str]) -> None:
        attempt = 1
        while True:
            self.console.print_info(f"installing {requirements}")
            try:
                code = self._run_install(requirements)
                message = f"pip install exited with code {code}"
            except OSError as e:
                code = e.errno or 1
                message = str(e)

            if code == 0:
                return

            if attempt >= self.max_attempts:
                self.console.print_error(f"error installing {requirements} - aborting!", [message])
                raise InstallError(
                    packages=requirements,
                    exit_code=code or 1,
                    message=message,
                    attempts=attempt,
                )

            attempt += 1
            self.console.print_warning(
                f"error installing {requirements} ({message}) - retrying ({attempt}/{self.max_attempts})..."
            )

"""In-memory stand-ins for the registry, the installer and the executor."""

from __future__ import annotations

from typing import Dict, List, Optional

from tav.errors import InstallError, RegistryError
from tav.model import ExecutionResult


class FakeRegistry:
    def __init__(self, packages: Dict[str, List[str]]):
        self.packages = packages
        self.calls: List[str] = []

    def versions(self, name: str) -> List[str]:
        self.calls.append(name)
        if name not in self.packages:
            raise RegistryError(name, "package not found")
        return list(self.packages[name])


class FakeInstaller:
    def __init__(self, fail_with: Optional[int] = None):
        self.fail_with = fail_with
        self.calls: List[List[str]] = []

    def ensure(self, requests) -> None:
        packages = [str(r) for r in requests]
        self.calls.append(packages)
        if self.fail_with is not None:
            raise InstallError(packages=packages, exit_code=self.fail_with, attempts=10)


class FakeExecutor:
    """Records (command, target) pairs; exit codes looked up by command."""

    def __init__(self, codes: Optional[Dict[str, int]] = None):
        self.codes = codes or {}
        self.calls: List[tuple] = []

    def run(self, command: str, target: str) -> ExecutionResult:
        self.calls.append((command, target))
        return ExecutionResult(exit_code=self.codes.get(command, 0))

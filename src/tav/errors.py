# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


class TavError(Exception):
    """Base class for every error that stops a run."""
    exit_code: int = 1


@dataclass
class ConfigurationError(TavError):
    """Malformed or missing configuration. Raised before anything runs."""
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class RegistryError(TavError):
    """Version lookup failed. Aborts the current spec, never retried."""
    package: str
    message: str

    def __str__(self) -> str:
        return f"could not list versions of {self.package}: {self.message}"


@dataclass
class InstallError(TavError):
    """pip failed on every attempt."""
    packages: List[str]
    exit_code: int = 1
    message: str = ""
    attempts: int = 0

    def __str__(self) -> str:
        msg = f"error installing {', '.join(self.packages)}"
        if self.attempts:
            msg += f" after {self.attempts} attempts"
        if self.message:
            msg += f" ({self.message})"
        return msg


@dataclass
class CommandError(TavError):
    """
    A pretest, test or posttest command exited non-zero (or could not be spawned).

    `phase` is one of "pretest", "test", "posttest".
    """
    command: str
    target: str
    exit_code: int = 1
    phase: str = field(default="test")

    def __str__(self) -> str:
        if self.phase == "test":
            return f"Test exited with code {self.exit_code}"
        return f"{self.phase.capitalize()} \"{self.command}\" for {self.target} exited with code {self.exit_code}"

# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from packaging.requirements import InvalidRequirement, Requirement

from .errors import ConfigurationError
from .semver import VersionRange, parse_range


@dataclass
class TestSpec:
    """
    One unit of work: a package, a version range and the commands to run
    against every published version in that range.
    """
    __test__ = False  # not a pytest class

    name: str
    versions: str
    commands: List[str]
    peer_dependencies: List[str] = field(default_factory=list)
    pretest: Optional[str] = None
    posttest: Optional[str] = None
    # Python version range the spec requires, e.g. ">=3.10"
    python: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Spec is missing a package name")
        if not self.versions:
            raise ConfigurationError(f'Missing "versions" property for {self.name}')
        if not self.commands:
            raise ConfigurationError(f'Missing "commands" property for {self.name}')

    @property
    def version_range(self) -> VersionRange:
        return parse_range(self.versions)


@dataclass(frozen=True)
class InstallRequest:
    """A package plus the range of versions that would satisfy it."""
    name: str
    range: str = ""

    @classmethod
    def parse(cls, spec: str) -> InstallRequest:
        """
        Accepts `name@range` (the form used in .tav.yml), a bare `name`,
        or a PEP 508 requirement such as `name>=1.0,<2`.
        """
        spec = spec.strip()
        if "@" in spec:
            name, _, rng = spec.partition("@")
            name = name.strip()
            if not name:
                raise ConfigurationError(f"Invalid dependency specifier: {spec!r}")
            return cls(name=name, range=rng.strip())
        try:
            req = Requirement(spec)
        except InvalidRequirement as e:
            raise ConfigurationError(f"Invalid dependency specifier: {spec!r} ({e})") from e
        return cls(name=req.name, range=str(req.specifier))

    @property
    def version_range(self) -> VersionRange:
        return parse_range(self.range)

    def to_requirement(self) -> str:
        """Render as a pip requirement string, e.g. `requests>=2.0.0,<3.0.0`."""
        rng = self.version_range
        if rng.is_union:
            raise ConfigurationError(
                f"Cannot install {self}: pip does not support '||' ranges"
            )
        return f"{self.name}{rng.alternatives[0]}"

    @classmethod
    def pinned(cls, name: str, version: str) -> InstallRequest:
        return cls(name=name, range=f"=={version}")

    def __str__(self) -> str:
        if not self.range:
            return self.name
        if self.range.startswith("==") and not self.range.startswith("==="):
            return f"{self.name}@{self.range[2:]}"
        return f"{self.name}@{self.range}"


@dataclass
class ExecutionResult:
    """Exit code of a finished command, plus its stdout when it was buffered."""
    exit_code: int
    stdout: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

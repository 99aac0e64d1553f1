# config.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .model import InstallRequest, TestSpec
from .semver import parse_range

DEFAULT_CONFIG_FILE = ".tav.yml"
SELECTION_ENV = "TAV"

# Variables set by the common CI providers (GitHub Actions, GitLab, Travis,
# CircleCI, Jenkins, Buildkite, Azure Pipelines, TeamCity, ...)
CI_ENV_VARS = (
    "CI",
    "CONTINUOUS_INTEGRATION",
    "BUILD_NUMBER",
    "RUN_ID",
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "TRAVIS",
    "CIRCLECI",
    "JENKINS_URL",
    "BUILDKITE",
    "TF_BUILD",
    "TEAMCITY_VERSION",
    "CODEBUILD_BUILD_ID",
)


def is_ci(env: Optional[Mapping[str, str]] = None) -> bool:
    """True when running on a continuous integration server."""
    env = os.environ if env is None else env
    for var in CI_ENV_VARS:
        value = env.get(var)
        if value and value.lower() not in ("0", "false"):
            return True
    return False


def _as_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


class SpecConfig(BaseModel):
    """One entry of .tav.yml."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    versions: str
    commands: List[str] = Field(min_length=1)
    name: Optional[str] = None
    peer_dependencies: List[str] = Field(default_factory=list, alias="peerDependencies")
    pretest: Optional[str] = None
    posttest: Optional[str] = None
    python: Optional[str] = None

    # YAML turns `versions: 1.2` into a float
    @field_validator("versions", "name", "pretest", "posttest", "python", mode="before")
    @classmethod
    def _scalar_to_str(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("commands", "peer_dependencies", mode="before")
    @classmethod
    def _to_list(cls, value: Any) -> Any:
        return _as_list(value)


def _format_validation_error(key: str, err: ValidationError) -> str:
    problems = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e["loc"]) or key
        problems.append(f"{loc}: {e['msg']}")
    return f"Invalid entry {key!r} in configuration: " + "; ".join(problems)


def spec_from_config(key: str, raw: Any) -> TestSpec:
    """Validate one configuration entry and turn it into a TestSpec."""
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Invalid entry {key!r} in configuration: expected a mapping")

    # In case the key isn't the name of the package, but instead a package
    # name has been set manually using the name property
    name = str(raw.get("name") or key)
    if not raw.get("versions"):
        raise ConfigurationError(f'Missing "versions" property for {name}')
    if not raw.get("commands"):
        raise ConfigurationError(f'Missing "commands" property for {name}')

    try:
        conf = SpecConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(key, e)) from e

    spec = TestSpec(
        name=conf.name or key,
        versions=conf.versions,
        commands=conf.commands,
        peer_dependencies=conf.peer_dependencies,
        pretest=conf.pretest,
        posttest=conf.posttest,
        python=conf.python,
    )

    # Surface bad ranges now rather than halfway through the run
    parse_range(spec.versions)
    if spec.python:
        parse_range(spec.python)
    for dep in spec.peer_dependencies:
        InstallRequest.parse(dep).to_requirement()

    return spec


def parse_selection(value: Optional[str]) -> Optional[List[str]]:
    """Parse the TAV allow-list ("a,b,c"). None means run everything."""
    if not value:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def load_specs(
    data: Any,
    *,
    selection: Optional[List[str]] = None,
) -> List[TestSpec]:
    """
    Build specs from parsed configuration data, in declaration order.

    Every entry is validated, including the ones that the selection filters out.
    """
    if data is None:
        return []
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping of spec name to spec")

    specs = [spec_from_config(str(key), raw) for key, raw in data.items()]
    if selection is not None:
        specs = [s for s in specs if s.name in selection]
    return specs


def load_config(
    path: Union[str, Path] = DEFAULT_CONFIG_FILE,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> List[TestSpec]:
    """Read a .tav.yml file. The TAV variable in `env` restricts which specs are kept."""
    env = os.environ if env is None else env
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise ConfigurationError(f"Configuration file not found: {cfg_path}")

    try:
        data = yaml.safe_load(cfg_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse {cfg_path}: {e}") from e

    return load_specs(data, selection=parse_selection(env.get(SELECTION_ENV)))

# runner.py
from __future__ import annotations

import platform
from enum import Enum
from typing import Callable, Dict, List, Optional

from .config import is_ci
from .errors import CommandError, TavError
from .executor import CommandExecutor, build_env
from .installer import DependencyInstaller, InstallMode, detect_install_mode
from .model import InstallRequest, TestSpec
from .registry import Registry, resolve_versions
from .semver import satisfies
from .ui.console import Console, get_console

# spec --> versions --> install --> pretest --> commands --> posttest --> next version


class State(str, Enum):
    IDLE = "idle"
    SKIPPED = "skipped"
    RESOLVING = "resolving"
    NEXT_VERSION = "next_version"
    INSTALLING = "installing"
    PRETEST = "pretest"
    TESTING = "testing"
    POSTTEST = "posttest"
    DONE = "done"


FINAL_STATES = (State.SKIPPED, State.DONE)


# ----------------------------------------------------------------------
# Test runner (one spec)
# ----------------------------------------------------------------------

class TestRunner:
    """
    Drives one TestSpec through every matching version.

    Versions are taken from the end of the registry's (publish-ordered) list,
    so the newest release is tested first. Any failure aborts the spec by
    raising; nothing is retried here.
    """
    __test__ = False  # not a pytest class

    def __init__(
        self,
        spec: TestSpec,
        *,
        registry: Registry,
        installer: DependencyInstaller,
        executor: CommandExecutor,
        console: Optional[Console] = None,
        python_version: Optional[str] = None,
    ):
        self.spec = spec
        self.registry = registry
        self.installer = installer
        self.executor = executor
        self.console = console or get_console()
        self.python_version = python_version or platform.python_version()

        self.state = State.IDLE
        self.versions: List[str] = []
        self.version: Optional[str] = None
        self.command_index = 0
        self.tested: List[str] = []

        self._handlers: Dict[State, Callable[[], State]] = {
            State.IDLE: self._start,
            State.RESOLVING: self._resolve,
            State.NEXT_VERSION: self._next_version,
            State.INSTALLING: self._install,
            State.PRETEST: self._pretest,
            State.TESTING: self._test,
            State.POSTTEST: self._posttest,
        }

    @property
    def target(self) -> str:
        return f"{self.spec.name}@{self.version}"

    def run(self) -> State:
        """Run until DONE or SKIPPED. Raises the first TavError hit."""
        while self.state not in FINAL_STATES:
            self.state = self._handlers[self.state]()
        return self.state

    # ---- transitions ----

    def _start(self) -> State:
        if self.spec.python and not satisfies(self.python_version, self.spec.python):
            self.console.print_info(
                f"skipping {self.spec.name} (requires python {self.spec.python}, running {self.python_version})"
            )
            return State.SKIPPED
        return State.RESOLVING

    def _resolve(self) -> State:
        self.versions = resolve_versions(self.registry, self.spec.name, self.spec.version_range)
        self.console.print_debug(f"{self.spec.name}: {len(self.versions)} version(s) match {self.spec.versions!r}")
        return State.NEXT_VERSION

    def _next_version(self) -> State:
        if not self.versions:
            return State.DONE
        self.version = self.versions.pop()
        self.command_index = 0
        return State.INSTALLING

    def _install(self) -> State:
        requests = [InstallRequest.parse(p) for p in self.spec.peer_dependencies]
        requests.append(InstallRequest.pinned(self.spec.name, self.version))
        self.installer.ensure(requests)
        return State.PRETEST

    def _pretest(self) -> State:
        if self.spec.pretest:
            self.console.print_info(f'running pretest "{self.spec.pretest}" for {self.spec.name}')
            self._execute(self.spec.pretest, "pretest")
        return State.TESTING

    def _test(self) -> State:
        command = self.spec.commands[self.command_index]
        self.command_index += 1
        self.console.print_info(f'running test "{command}" with {self.target}')
        self._execute(command, "test")
        if self.command_index < len(self.spec.commands):
            return State.TESTING
        self.tested.append(self.version)
        return State.POSTTEST

    def _posttest(self) -> State:
        if self.spec.posttest:
            self.console.print_info(f'running posttest "{self.spec.posttest}" for {self.spec.name}')
            self._execute(self.spec.posttest, "posttest")
        return State.NEXT_VERSION

    def _execute(self, command: str, phase: str) -> None:
        result = self.executor.run(command, self.target)
        if not result.ok:
            self.console.print_error(f'{phase} "{command}" failed with {self.target} (exit code {result.exit_code})')
            raise CommandError(
                command=command,
                target=self.target,
                exit_code=result.exit_code,
                phase=phase,
            )


# ----------------------------------------------------------------------
# Job queue (all specs)
# ----------------------------------------------------------------------

class JobQueue:
    """
    Runs specs one at a time, popping from the end: the last spec declared
    runs first. Stops at the first error.
    """

    def __init__(
        self,
        specs: List[TestSpec],
        runner_factory: Callable[[TestSpec], TestRunner],
        *,
        ci_only: bool = False,
        on_ci: Optional[bool] = None,
        console: Optional[Console] = None,
    ):
        self.specs = list(specs)
        self.runner_factory = runner_factory
        self.ci_only = ci_only
        self.on_ci = is_ci() if on_ci is None else on_ci
        self.console = console or get_console()

    def run(self) -> int:
        """Returns the process exit code."""
        if self.ci_only and not self.on_ci:
            self.console.print_info("not running on a CI server, skipping")
            return 0

        try:
            while self.specs:
                self.runner_factory(self.specs.pop()).run()
        except TavError as e:
            self.console.print_fatal(e)
            return e.exit_code or 1

        self.console.print_ok()
        return 0


def run_specs(
    specs: List[TestSpec],
    *,
    quiet: bool = False,
    ci_only: bool = False,
    install_mode: str = "auto",
    index_url: Optional[str] = None,
    console: Optional[Console] = None,
) -> int:
    """Build the collaborators, run every spec and return the exit code."""
    console = console or get_console()

    if install_mode == "auto":
        mode = detect_install_mode()
    else:
        mode = InstallMode(install_mode)
    console.print_debug(f"install mode: {mode.value}")

    registry = Registry(index_url)
    installer = DependencyInstaller(mode, quiet=quiet, console=console)
    executor = CommandExecutor(build_env(), quiet=quiet, console=console)

    def make_runner(spec: TestSpec) -> TestRunner:
        return TestRunner(
            spec,
            registry=registry,
            installer=installer,
            executor=executor,
            console=console,
        )

    return JobQueue(specs, make_runner, ci_only=ci_only, console=console).run()

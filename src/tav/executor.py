# executor.py
from __future__ import annotations

import os
import subprocess
import sysconfig
from pathlib import Path
from typing import Dict, Mapping, Optional

from .model import ExecutionResult
from .ui.console import Console, get_console

CHUNK_SIZE = 64 * 1024


def build_env(base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """
    Copy of `base` (default: os.environ) with the scripts directory of the
    running interpreter first on PATH, so console scripts of freshly
    installed packages win over anything else on the machine.
    """
    env = dict(os.environ if base is None else base)
    scripts = sysconfig.get_path("scripts")
    path = env.get("PATH", "")
    if scripts and scripts not in path.split(os.pathsep):
        env["PATH"] = scripts + os.pathsep + path if path else scripts
    return env


class CommandExecutor:
    """Runs shell commands one at a time and reports their exit code."""

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        *,
        quiet: bool = False,
        cwd: str | Path | None = None,
        console: Optional[Console] = None,
    ):
        """
        Args:
            env: Environment for child processes (see build_env)
            quiet: Buffer stdout and only show it when the command fails
            cwd: Working directory for child processes
            console: Console used for tav's own messages
        """
        self.env = dict(env) if env is not None else build_env()
        self.quiet = quiet
        self.cwd = str(cwd) if cwd is not None else None
        self.console = console or get_console()

    def run(self, command: str, target: str) -> ExecutionResult:
        """
        Run `command` through the shell and wait for it.

        `target` names what is being tested (e.g. "requests@2.31.0") and
        only shows up in error messages. Output is relayed as raw bytes,
        whatever its encoding and however it is split into lines.
        """
        try:
            proc = subprocess.Popen(
                command,
                shell=True,
                cwd=self.cwd,
                env=self.env,
                stdout=subprocess.PIPE,
                stderr=None,  # inherited: always live
                bufsize=0,
            )
        except OSError as e:
            self.console.print_error(f'error running "{command}" with {target}', [str(e)])
            return ExecutionResult(exit_code=e.errno or 1)

        buffered = bytearray()
        with proc:
            for chunk in iter(lambda: proc.stdout.read(CHUNK_SIZE), b""):
                if self.quiet:
                    buffered += chunk
                else:
                    self.console.write_raw(chunk)
            code = proc.wait()

        if code < 0:
            # killed by signal -code
            code = 128 - code

        stdout = None
        if self.quiet:
            stdout = buffered.decode("utf-8", errors="replace")
            if code != 0 and buffered:
                self.console.print_info("detected failing command, flushing stdout...")
                self.console.flush_output(bytes(buffered))
        return ExecutionResult(exit_code=code, stdout=stdout)

"""Console output formatting utilities for tav."""

from __future__ import annotations

import sys
from typing import Optional


class Console:
    """
    Centralized console output.

    Every line tav prints itself starts with "-- " so it can be told apart
    from the output of the commands under test.
    """

    PREFIX = "-- "

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def _out(self, message: str, stream=None) -> None:
        stream = stream or sys.stdout
        print(f"{self.PREFIX}{message}", file=stream)
        stream.flush()

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._out(message)

    def print_warning(self, message: str) -> None:
        """Print warning message."""
        self._out(message, sys.stderr)

    def print_error(self, message: str, details: Optional[list[str]] = None) -> None:
        """
        Print error message.

        Args:
            message: Main error message
            details: Optional list of detail lines, printed unprefixed
        """
        self._out(message, sys.stderr)
        for detail in details or []:
            print(detail, file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)

    def print_fatal(self, exc: BaseException) -> None:
        self._out(f"fatal: {exc}")
        if self.debug:
            self.print_exception(exc)

    def print_ok(self) -> None:
        self._out("ok")

    def write_raw(self, data: bytes) -> None:
        """Relay bytes from a child process to stdout untouched."""
        sys.stdout.flush()
        buffer = getattr(sys.stdout, "buffer", None)
        if buffer is None:
            # stream replaced by a text-only object
            encoding = getattr(sys.stdout, "encoding", None) or "utf-8"
            sys.stdout.write(data.decode(encoding, errors="replace"))
        else:
            buffer.write(data)
            buffer.flush()
        sys.stdout.flush()

    def flush_output(self, output: bytes) -> None:
        """Write captured command output to stdout verbatim."""
        if output and not output.endswith(b"\n"):
            output += b"\n"
        self.write_raw(output)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console

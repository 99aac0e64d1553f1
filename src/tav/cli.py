# cli.py
from __future__ import annotations

import shlex
import sys
from typing import List, Optional, Tuple

import click

from tav.config import DEFAULT_CONFIG_FILE, load_config
from tav.errors import ConfigurationError
from tav.model import TestSpec
from tav.runner import run_specs
from tav.ui.console import Console, set_console, get_console


def adhoc_spec(args: Tuple[str, ...]) -> TestSpec:
    """
    Build a spec from `<module> <range> <command> [args...]`.

    A single command argument is used as-is ("npm test" style); several are
    quoted for the shell and joined.

    Raises:
        click.UsageError: If fewer than three arguments are given
    """
    rest: List[str] = list(args)
    if rest[2:3] == ["--"]:
        del rest[2]
    if len(rest) < 3:
        raise click.UsageError("expected <module> <semver> <command> [args...]")

    name, versions, command = rest[0], rest[1], rest[2:]
    cmd = command[0] if len(command) == 1 else shlex.join(command)
    try:
        return TestSpec(name=name, versions=versions, commands=[cmd])
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e


@click.command(
    context_settings={
        "help_option_names": ["-h", "--help"],
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
    },
)
@click.option("-q", "--quiet", is_flag=True, default=False, help="Don't output stdout from tests unless an error occurs")
@click.option("--ci", "ci_only", is_flag=True, default=False, help="Only run on CI servers")
@click.option(
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="Configuration file used when no module is given",
)
@click.option(
    "--install-mode",
    type=click.Choice(["auto", "force", "selective"]),
    default="auto",
    show_default=True,
    help="Reinstall every package for every version, or reuse satisfying installs",
)
@click.option("--index-url", default=None, envvar="TAV_INDEX_URL", help="PyPI JSON API base URL")
@click.option("--debug", is_flag=True, default=False, help="Show stack traces on errors")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def cli(
    quiet: bool,
    ci_only: bool,
    config_path: str,
    install_mode: str,
    index_url: Optional[str],
    debug: bool,
    args: Tuple[str, ...],
):
    """tav: run a test command against every version of a package.

    \b
    Usage: tav [options] [<module> <semver> <command> [args...]]

    Without arguments the specs in .tav.yml are run.
    """
    console = Console(debug=debug)
    set_console(console)

    try:
        if args:
            specs = [adhoc_spec(args)]
        else:
            specs = load_config(config_path)

        code = run_specs(
            specs,
            quiet=quiet,
            ci_only=ci_only,
            install_mode=install_mode,
            index_url=index_url,
            console=console,
        )
    except click.UsageError:
        raise
    except ConfigurationError as e:
        console.print_fatal(e)
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        console.print_info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        get_console().print_exception(e)
        sys.exit(1)

    sys.exit(code)


def main() -> None:
    cli(prog_name="tav")


if __name__ == "__main__":
    main()

import subprocess

import pytest
from packaging.version import Version

from tav import installer as installer_mod
from tav.errors import InstallError
from tav.installer import DependencyInstaller, InstallMode, detect_install_mode
from tav.model import InstallRequest


class FlakyInstall:
    """install_fn that fails `failures` times before succeeding."""

    def __init__(self, failures, code=1):
        self.failures = failures
        self.code = code
        self.calls = []

    def __call__(self, requirements):
        self.calls.append(list(requirements))
        if len(self.calls) <= self.failures:
            return self.code
        return 0


def _requests(*specs):
    return [InstallRequest.parse(s) for s in specs]


def test_force_mode_installs_everything(console):
    install = FlakyInstall(0)
    inst = DependencyInstaller(
        InstallMode.FORCE,
        install_fn=install,
        lookup_fn=lambda name: "1.0.0",
        console=console,
    )
    inst.ensure(_requests("peer@^1.0.0") + [InstallRequest.pinned("roundround", "0.2.0")])
    assert install.calls == [["peer<2.0.0,>=1.0.0", "roundround==0.2.0"]]


def test_selective_mode_reuses_satisfying_installs(console, capsys):
    installed = {"peer": "1.4.0", "roundround": "0.1.0"}
    install = FlakyInstall(0)
    inst = DependencyInstaller(
        InstallMode.SELECTIVE,
        install_fn=install,
        lookup_fn=installed.get,
        console=console,
    )
    inst.ensure(_requests("peer@^1.0.0") + [InstallRequest.pinned("roundround", "0.2.0")])

    assert install.calls == [["roundround==0.2.0"]]
    assert "-- reusing already installed peer@^1.0.0" in capsys.readouterr().out


def test_selective_mode_skips_installer_when_nothing_is_missing(console):
    install = FlakyInstall(0)
    inst = DependencyInstaller(
        InstallMode.SELECTIVE,
        install_fn=install,
        lookup_fn=lambda name: "0.2.0",
        console=console,
    )
    inst.ensure([InstallRequest.pinned("roundround", "0.2.0")])
    assert install.calls == []


def test_selective_mode_installs_when_package_is_absent(console):
    install = FlakyInstall(0)
    inst = DependencyInstaller(
        InstallMode.SELECTIVE,
        install_fn=install,
        lookup_fn=lambda name: None,
        console=console,
    )
    inst.ensure(_requests("peer"))
    assert install.calls == [["peer"]]


def test_retries_until_success(console, capsys):
    install = FlakyInstall(9)
    inst = DependencyInstaller(InstallMode.FORCE, install_fn=install, console=console)
    inst.ensure(_requests("peer@1.0.0"))

    assert len(install.calls) == 10
    assert all(call == ["peer==1.0.0"] for call in install.calls)
    err = capsys.readouterr().err
    assert "retrying (2/10)" in err
    assert "retrying (10/10)" in err
    assert "pip install exited with code 1" in err


def test_gives_up_after_ten_attempts(console):
    install = FlakyInstall(10, code=3)
    inst = DependencyInstaller(InstallMode.FORCE, install_fn=install, console=console)

    with pytest.raises(InstallError) as excinfo:
        inst.ensure(_requests("peer@1.0.0"))

    assert len(install.calls) == 10
    assert excinfo.value.exit_code == 3
    assert excinfo.value.attempts == 10


def test_spawn_errors_count_as_failed_attempts(console):
    calls = []

    def broken(requirements):
        calls.append(requirements)
        raise FileNotFoundError(2, "No such file or directory")

    inst = DependencyInstaller(InstallMode.FORCE, install_fn=broken, max_attempts=3, console=console)
    with pytest.raises(InstallError) as excinfo:
        inst.ensure(_requests("peer"))
    assert len(calls) == 3
    assert excinfo.value.exit_code == 2


@pytest.mark.parametrize(
    "version, mode",
    [
        (Version("24.0"), InstallMode.FORCE),
        (Version("5.0"), InstallMode.FORCE),
        (Version("4.9"), InstallMode.SELECTIVE),
        (None, InstallMode.FORCE),
    ],
)
def test_detect_install_mode(monkeypatch, version, mode):
    monkeypatch.setattr(installer_mod, "pip_version", lambda python: version)
    assert detect_install_mode() is mode


def test_pip_version_parsing(monkeypatch):
    monkeypatch.setattr(
        subprocess,
        "check_output",
        lambda *a, **kw: "pip 23.3.1 from /venv/lib/python3.12/site-packages/pip (python 3.12)\n",
    )
    assert installer_mod.pip_version("python") == Version("23.3.1")


def test_pip_version_unavailable(monkeypatch):
    def missing(*a, **kw):
        raise FileNotFoundError("python")

    monkeypatch.setattr(subprocess, "check_output", missing)
    assert installer_mod.pip_version("python") is None


def test_pip_install_command(monkeypatch):
    seen = {}

    def fake_run(cmd, check):
        seen["cmd"] = cmd
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr(subprocess, "run", fake_run)
    code = installer_mod.pip_install(["roundround==0.2.0"], python="/venv/bin/python", quiet=True)

    assert code == 0
    assert seen["cmd"] == [
        "/venv/bin/python", "-m", "pip", "install", "--disable-pip-version-check", "-q", "roundround==0.2.0",
    ]

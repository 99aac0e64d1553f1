import pytest

from tav.errors import ConfigurationError
from tav.model import ExecutionResult, InstallRequest, TestSpec


@pytest.mark.parametrize(
    "spec, name, rng, requirement",
    [
        ("roundround@0.2.0", "roundround", "0.2.0", "roundround==0.2.0"),
        ("roundround@^0.1.0", "roundround", "^0.1.0", "roundround<0.2.0,>=0.1.0"),
        ("roundround", "roundround", "", "roundround"),
        ("requests>=2,<3", "requests", "<3,>=2", "requests<3,>=2"),
    ],
)
def test_install_request_parse(spec, name, rng, requirement):
    req = InstallRequest.parse(spec)
    assert req.name == name
    assert req.range == rng
    assert req.to_requirement() == requirement


def test_pinned_request():
    req = InstallRequest.pinned("roundround", "1.0")
    assert str(req) == "roundround@1.0"
    # "1.0" alone would mean 1.0.x
    assert req.to_requirement() == "roundround==1.0"


def test_invalid_specifier():
    with pytest.raises(ConfigurationError):
        InstallRequest.parse("@1.0.0")
    with pytest.raises(ConfigurationError):
        InstallRequest.parse("not a requirement!")


def test_spec_requires_versions_and_commands():
    with pytest.raises(ConfigurationError, match='Missing "versions" property for pkg'):
        TestSpec(name="pkg", versions="", commands=["pytest"])
    with pytest.raises(ConfigurationError):
        TestSpec(name="pkg", versions="*", commands=[])


def test_execution_result():
    assert ExecutionResult(0).ok
    assert not ExecutionResult(1, stdout="boom").ok

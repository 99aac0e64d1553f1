import pytest

from tav.errors import ConfigurationError
from tav.semver import parse_range, satisfies


@pytest.mark.parametrize(
    "expr, version, expected",
    [
        ("<=0.2.0", "0.2.0", True),
        ("<=0.2.0", "0.2.1", False),
        ("1.2.3", "1.2.3", True),
        ("1.2.3", "1.2.4", False),
        ("1.x", "1.9.9", True),
        ("1.x", "2.0.0", False),
        ("1.2", "1.2.7", True),
        ("1.2", "1.3.0", False),
        ("*", "0.0.1", True),
        ("", "42.0", True),
        ("^1.2.3", "1.9.0", True),
        ("^1.2.3", "2.0.0", False),
        ("^0.2.3", "0.2.9", True),
        ("^0.2.3", "0.3.0", False),
        ("^0.0.3", "0.0.4", False),
        ("~1.2.3", "1.2.9", True),
        ("~1.2.3", "1.3.0", False),
        ("~1", "1.9.0", True),
        (">=1.0.0 <2.0.0", "1.5.0", True),
        (">=1.0.0 <2.0.0", "2.0.0", False),
        (">= 1.0.0", "1.0.0", True),
        (">1.2", "1.2.9", False),
        (">1.2", "1.3.0", True),
        ("<=1.2", "1.2.9", True),
        ("1.2 - 2.3.4", "2.3.4", True),
        ("1.2 - 2.3.4", "1.1.9", False),
        ("1.2.3 - 2.3", "2.3.8", True),
        ("4.x || 6.x", "6.1.0", True),
        ("4.x || 6.x", "5.0.0", False),
        # PEP 440 passes straight through
        (">=1,<2", "1.4", True),
        ("~=1.4", "1.9", True),
        ("==1.*", "2.0", False),
    ],
)
def test_satisfies(expr, version, expected):
    assert satisfies(version, expr) is expected


def test_prereleases_excluded_unless_named():
    assert not satisfies("2.0.0rc1", ">=1.0.0")
    assert satisfies("2.0.0rc1", ">=2.0.0rc1")


@pytest.mark.parametrize("expr", ["*", "", ">=1.0.0", ">=1.0.0 <3.0.0", "1.0 - 3.0", "2.x", ">=1,<3", "==2.*"])
def test_open_ranges_skip_prereleases(expr):
    assert not satisfies("2.0.0rc1", expr)
    assert not satisfies("2.1.0.dev3", expr)
    assert satisfies("2.0.0", expr)


def test_prerelease_named_in_one_alternative_only():
    rng = parse_range("^1.0.0-beta.1 || 2.x")
    assert rng.contains("1.0.0b2")
    assert not rng.contains("2.1.0b1")


def test_unparseable_versions_never_match():
    assert not satisfies("not-a-version", "*")


def test_filter_preserves_order():
    rng = parse_range("1.x")
    assert rng.filter(["1.2.0", "0.9.0", "1.0.0", "2.0.0", "1.1.0"]) == ["1.2.0", "1.0.0", "1.1.0"]


def test_union_flag():
    assert parse_range("1.x || 3.x").is_union
    assert not parse_range("^1.0.0").is_union


@pytest.mark.parametrize("expr", [">=banana", "1.2 - 2.0 - 3.0", "=>1.0"])
def test_invalid_ranges_raise(expr):
    with pytest.raises(ConfigurationError):
        parse_range(expr)

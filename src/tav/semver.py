"""Version ranges built atop packaging.

Ranges use the npm-style grammar that .tav.yml files have always used, and
are translated into one `SpecifierSet` per `||` alternative:

- exact versions                 "1.2.3"          -> ==1.2.3
- X-ranges and partials          "1.x", "1.2"     -> >=1.2.0,<1.3.0
- caret ranges                   "^1.2.3"         -> >=1.2.3,<2.0.0
- tilde ranges                   "~1.2.3"         -> >=1.2.3,<1.3.0
- comparator sets                ">=1.0.0 <2.0.0"
- hyphen ranges                  "1.2 - 2.3.4"    -> >=1.2.0,<=2.3.4
- unions                         "4.x || 6.x"

Anything that looks like a PEP 440 specifier ("==1.*", "~=1.4", ">=1,<2")
is handed to packaging unchanged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from .errors import ConfigurationError

_PARTIAL = re.compile(r"^v?(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?$")
_OPERATOR = re.compile(r"^(<=|>=|<|>|=|\^|~>|~)?(.*)$")
_PEP440_OPERATORS = ("==", "!=", "~=")

# Matches no release at all, used for ranges like "<0" or ">*".
_NOTHING = ["<0"]

Parts = Tuple[Optional[int], Optional[int], Optional[int]]


@dataclass(frozen=True)
class VersionRange:
    expr: str
    alternatives: Tuple[SpecifierSet, ...]

    @property
    def is_union(self) -> bool:
        return len(self.alternatives) > 1

    def contains(self, version: str) -> bool:
        try:
            v = Version(version)
        except InvalidVersion:
            return False
        return any(spec.contains(v, prereleases=_names_prerelease(spec)) for spec in self.alternatives)

    def filter(self, versions: Iterable[str]) -> List[str]:
        """Keep the versions inside the range, in the order given."""
        return [v for v in versions if self.contains(v)]

    def __str__(self) -> str:
        return " || ".join(str(s) or "*" for s in self.alternatives)


def parse_range(expr: str) -> VersionRange:
    """Parse a range expression. Raises ConfigurationError on bad syntax."""
    expr = (expr or "").strip()
    try:
        alternatives = tuple(_parse_alternative(alt.strip()) for alt in expr.split("||"))
    except (InvalidSpecifier, InvalidVersion, ValueError) as e:
        raise ConfigurationError(f"Invalid version range {expr!r}: {e}") from e
    return VersionRange(expr=expr, alternatives=alternatives)


def satisfies(version: str, expr: str) -> bool:
    return parse_range(expr).contains(version)


def _names_prerelease(spec: SpecifierSet) -> bool:
    """True when one of the specifiers is written against a pre-release."""
    for s in spec:
        try:
            if Version(s.version).is_prerelease:
                return True
        except InvalidVersion:
            # wildcards such as ==1.*
            continue
    return False


# ---------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------

def _parse_alternative(alt: str) -> SpecifierSet:
    if "," in alt or alt.startswith(_PEP440_OPERATORS):
        return SpecifierSet(alt)

    # "1.2 - 2.3.4"
    hyphen = re.split(r"\s+-\s+", alt)
    if len(hyphen) == 2:
        return SpecifierSet(",".join(_hyphen(hyphen[0].strip(), hyphen[1].strip())))
    if len(hyphen) > 2:
        raise ValueError("more than one hyphen range")

    # ">= 1.2" is the same as ">=1.2"
    alt = re.sub(r"(<=|>=|<|>|=|\^|~>|~)\s+", r"\1", alt)

    specs: List[str] = []
    for token in alt.split():
        specs.extend(_comparator(token))
    return SpecifierSet(",".join(specs))


def _split_version(token: str) -> Tuple[Parts, Optional[Version]]:
    """
    Returns (parts, None) for partial/wildcard versions, or
    (release parts, Version) for complete ones such as "1.2.3b1".
    """
    m = _PARTIAL.match(token)
    if m:
        nums: List[Optional[int]] = []
        for g in m.groups():
            # anything after a wildcard is a wildcard too
            if g is None or g in "xX*" or (nums and nums[-1] is None):
                nums.append(None)
            else:
                nums.append(int(g))
        if nums[2] is not None:
            return (nums[0], nums[1], nums[2]), Version(token.lstrip("v"))
        return (nums[0], nums[1], nums[2]), None

    v = Version(token.lstrip("v"))
    release = (tuple(v.release) + (0, 0, 0))[:3]
    return (release[0], release[1], release[2]), v


def _fmt(major: int, minor: int = 0, patch: int = 0) -> str:
    return f"{major}.{minor}.{patch}"


def _comparator(token: str) -> List[str]:
    m = _OPERATOR.match(token)
    op, rest = m.group(1) or "", m.group(2)
    if rest in ("", "*", "x", "X"):
        if op in ("<", ">"):
            return list(_NOTHING)
        return []
    (major, minor, patch), full = _split_version(rest)

    if op in ("", "="):
        return _xrange(major, minor, patch, full)
    if op == "^":
        return _caret(major, minor, patch, full)
    if op in ("~", "~>"):
        return _tilde(major, minor, patch, full)
    if op == ">=":
        if major is None:
            return []
        return [f">={full}" if full else f">={_fmt(major, minor or 0, 0)}"]
    if op == ">":
        if major is None:
            return list(_NOTHING)
        if full:
            return [f">{full}"]
        if minor is None:
            return [f">={_fmt(major + 1)}"]
        return [f">={_fmt(major, minor + 1)}"]
    if op == "<":
        if major is None:
            return list(_NOTHING)
        return [f"<{full}" if full else f"<{_fmt(major, minor or 0, 0)}"]
    if op == "<=":
        if major is None:
            return []
        if full:
            return [f"<={full}"]
        if minor is None:
            return [f"<{_fmt(major + 1)}"]
        return [f"<{_fmt(major, minor + 1)}"]
    raise ValueError(f"unknown operator {op!r}")


def _xrange(major, minor, patch, full) -> List[str]:
    if full:
        return [f"=={full}"]
    if major is None:
        return []
    if minor is None:
        return [f">={_fmt(major)}", f"<{_fmt(major + 1)}"]
    return [f">={_fmt(major, minor)}", f"<{_fmt(major, minor + 1)}"]


def _caret(major, minor, patch, full) -> List[str]:
    if major is None:
        return []
    lower = str(full) if full else _fmt(major, minor or 0, patch or 0)
    if major > 0:
        upper = _fmt(major + 1)
    elif minor is None:
        upper = _fmt(1)
    elif minor > 0:
        upper = _fmt(0, minor + 1)
    elif patch is None:
        upper = _fmt(0, 1)
    else:
        upper = _fmt(0, 0, patch + 1)
    return [f">={lower}", f"<{upper}"]


def _tilde(major, minor, patch, full) -> List[str]:
    if major is None:
        return []
    lower = str(full) if full else _fmt(major, minor or 0, patch or 0)
    if minor is None:
        return [f">={lower}", f"<{_fmt(major + 1)}"]
    return [f">={lower}", f"<{_fmt(major, minor + 1)}"]


def _hyphen(low: str, high: str) -> List[str]:
    specs: List[str] = []
    (major, minor, patch), full = _split_version(low)
    if major is not None:
        specs.append(f">={full}" if full else f">={_fmt(major, minor or 0, 0)}")

    (major, minor, patch), full = _split_version(high)
    if full:
        specs.append(f"<={full}")
    elif major is not None:
        if minor is None:
            specs.append(f"<{_fmt(major + 1)}")
        else:
            specs.append(f"<{_fmt(major, minor + 1)}")
    return specs

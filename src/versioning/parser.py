"""Version string classification.

Go module versions follow semantic versioning with a mandatory ``v`` prefix.
A *pseudo-version* encodes a commit that has no release tag::

    v0.0.0-20200101000000-abc1234def56
    v1.2.4-0.20200101000000-abc1234def56

The prerelease component is taken with its leading hyphen and split on ``-``
(so the first part is always empty). Two parts is an ordinary prerelease tag,
three parts carries a commit reference in the last part. A third part that is
not hex, or is longer than a full git hash, cannot be a commit; such a
version is pinned verbatim like an ordinary prerelease tag.
"""

import re

from common.errors import MalformedVersion
from constants import Constants

from .models import Classification, VersionKind

_NUM = r"(?:0|[1-9][0-9]*)"
_IDENT = r"[0-9A-Za-z-]+"
_SEMVER_RE = re.compile(
    r"^v(?P<major>" + _NUM + r")"
    r"(?:\.(?P<minor>" + _NUM + r")"
    r"(?:\.(?P<patch>" + _NUM + r")"
    r"(?P<prerelease>-" + _IDENT + r"(?:\." + _IDENT + r")*)?"
    r"(?P<build>\+" + _IDENT + r"(?:\." + _IDENT + r")*)?"
    r")?)?$"
)
_LOOSE_VERSION_RE = re.compile(r"^v?[0-9]+(?:\.[0-9]+)*(?:[-+.][0-9A-Za-z.+-]*)?$")
_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def _valid_prerelease(prerelease: str) -> bool:
    """Numeric prerelease identifiers may not carry leading zeros."""
    for ident in prerelease[1:].split("."):
        if ident.isdigit() and len(ident) > 1 and ident.startswith("0"):
            return False
    return True


def is_valid_semver(version: str) -> bool:
    """Report whether ``version`` is a valid Go semantic version."""
    match = _SEMVER_RE.match(version)
    if not match:
        return False
    prerelease = match.group("prerelease")
    return prerelease is None or _valid_prerelease(prerelease)


def prerelease(version: str) -> str:
    """Return the prerelease suffix of ``version`` including its leading hyphen.

    Empty when ``version`` is not valid semver or has no prerelease.
    """
    if not is_valid_semver(version):
        return ""
    return _SEMVER_RE.match(version).group("prerelease") or ""


def strip_incompatible(version: str) -> str:
    if version.endswith(Constants.INCOMPATIBLE_SUFFIX):
        return version[: -len(Constants.INCOMPATIBLE_SUFFIX)]
    return version


def is_hex(value: str) -> bool:
    return bool(_HEX_RE.match(value))


def classify(path: str, version: str) -> Classification:
    """Classify the version string ``version`` declared for ``path``.

    Raises:
        MalformedVersion: the prerelease splits into an unexpected number of parts.
    """
    raw = version
    version = version.strip()
    incompatible = version.endswith(Constants.INCOMPATIBLE_SUFFIX)
    version = strip_incompatible(version)

    if not version:
        raise MalformedVersion(path, raw, "empty version")

    if not is_valid_semver(version):
        if _LOOSE_VERSION_RE.match(version):
            kind = VersionKind.INCOMPATIBLE if incompatible else VersionKind.SEMVER
            return Classification(raw=raw, kind=kind, value="=" + version, incompatible=incompatible)
        return Classification(raw=raw, kind=VersionKind.BRANCH, value=version)

    pre = prerelease(version)
    if not pre:
        kind = VersionKind.INCOMPATIBLE if incompatible else VersionKind.SEMVER
        return Classification(raw=raw, kind=kind, value="=" + version, incompatible=incompatible)

    components = pre.split("-")
    if len(components) == 2:
        # An ordinary prerelease tag such as v1.0.0-rc1; pin it verbatim.
        kind = VersionKind.INCOMPATIBLE if incompatible else VersionKind.SEMVER
        return Classification(raw=raw, kind=kind, value=version, incompatible=incompatible)

    if len(components) == 3:
        commit = components[2]
        if not is_hex(commit) or len(commit) > Constants.FULL_SHA_LENGTH:
            kind = VersionKind.INCOMPATIBLE if incompatible else VersionKind.SEMVER
            return Classification(raw=raw, kind=kind, value=version, incompatible=incompatible)
        commit = commit.lower()
        return Classification(
            raw=raw,
            kind=VersionKind.PSEUDO,
            value=commit,
            commit=commit,
            incompatible=incompatible,
        )

    raise MalformedVersion(path, raw, f"unexpected prerelease format {pre!r}")


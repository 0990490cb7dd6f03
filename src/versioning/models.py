"""Data models for version classification and constraint reconciliation."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from common.errors import ConfigurationError
from constants import Constants

_FULL_SHA_RE = re.compile(r"^[0-9a-f]{%d}$" % Constants.FULL_SHA_LENGTH)


class VersionKind(Enum):
    """Shape of a raw version string."""
    SEMVER = "semver"
    INCOMPATIBLE = "incompatible"
    PSEUDO = "pseudo"
    BRANCH = "branch"


class ConstraintKind(Enum):
    """Which single field of an override block is populated."""
    VERSION = "version"
    REVISION = "revision"
    BRANCH = "branch"


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one version string."""
    raw: str
    kind: VersionKind
    value: str  # pinned version, commit reference or branch name
    commit: Optional[str] = None
    incompatible: bool = False

    @property
    def needs_resolution(self) -> bool:
        """True when the commit reference is abbreviated."""
        return self.commit is not None and len(self.commit) < Constants.FULL_SHA_LENGTH


@dataclass(frozen=True)
class ResolvedConstraint:
    """A normalized override: a project name plus exactly one pin."""
    name: str
    kind: ConstraintKind
    value: str
    source: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("constraint name must not be empty")
        if not self.value:
            raise ValueError(f"constraint for {self.name} has an empty {self.kind.value}")
        if self.kind == ConstraintKind.REVISION and not _FULL_SHA_RE.match(self.value):
            raise ValueError(
                f"revision for {self.name} must be a full {Constants.FULL_SHA_LENGTH}-character hash, "
                f"got {self.value!r}"
            )

    @property
    def version(self) -> Optional[str]:
        return self.value if self.kind == ConstraintKind.VERSION else None

    @property
    def revision(self) -> Optional[str]:
        return self.value if self.kind == ConstraintKind.REVISION else None

    @property
    def branch(self) -> Optional[str]:
        return self.value if self.kind == ConstraintKind.BRANCH else None


@dataclass(frozen=True)
class ModuleRequirement:
    """A `require` entry of a go.mod, with its `replace` target if any."""
    path: str
    version: str
    indirect: bool = False
    replace_path: Optional[str] = None
    replace_version: Optional[str] = None

    @property
    def target_path(self) -> str:
        return self.replace_path or self.path

    @property
    def target_version(self) -> str:
        return self.replace_version or self.version


@dataclass(frozen=True)
class PackageLock:
    """One package entry of a govendor vendor.json."""
    path: str
    version: str = ""
    version_exact: str = ""
    revision: str = ""
    revision_time: Optional[datetime] = None


@dataclass
class VendorSource:
    """Locks read from one exported project, with its exclusion prefixes."""
    origin: str
    locks: List[PackageLock]
    exclude_prefixes: List[str] = field(default_factory=list)


@dataclass
class GopkgConstraint:
    """A [[constraint]] or [[override]] table of a Gopkg.toml."""
    name: str
    branch: str = ""
    revision: str = ""
    version: str = ""
    source: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def has_marker(self, key: str) -> bool:
        return key in self.metadata

    def exclude_prefixes(self, key: str) -> List[str]:
        """Path prefixes listed under metadata ``key``; must be an array of strings."""
        value = self.metadata.get(key, [])
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ConfigurationError(f"{key} of {self.name} must be an array of strings")
        return list(value)

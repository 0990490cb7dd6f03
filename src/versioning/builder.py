"""Turn module requirements and vendor locks into override constraints."""

import logging
from typing import Iterable, List

from common.errors import MalformedVersion
from constants import Constants

from .models import (
    ConstraintKind,
    ModuleRequirement,
    PackageLock,
    ResolvedConstraint,
    VersionKind,
)
from .parser import classify, is_hex

logger = logging.getLogger(__name__)


class ConstraintBuilder:
    """Combine classification with abbreviated-hash resolution.

    ``resolver`` is anything with ``resolve(import_path, abbreviated) -> str``.
    """

    def __init__(self, resolver):
        self.resolver = resolver

    def _revision(self, import_path: str, commit: str) -> str:
        # Only git hashes can be pinned; bzr and hg revision ids cannot.
        if not is_hex(commit) or len(commit) > Constants.FULL_SHA_LENGTH:
            raise MalformedVersion(import_path, commit, "revision is not a git commit hash")
        if len(commit) < Constants.FULL_SHA_LENGTH:
            return self.resolver.resolve(import_path, commit)
        return commit.lower()

    def build(self, requirement: ModuleRequirement) -> ResolvedConstraint:
        """Build the override for one go.mod requirement.

        The replacement (when present) is the resolution target; the override
        keeps the original import path as its name and points ``source`` at the
        replacement.
        """
        target = requirement.target_path
        source = target if target != requirement.path else None
        classification = classify(target, requirement.target_version)

        if classification.kind == VersionKind.PSEUDO:
            return ResolvedConstraint(
                name=requirement.path,
                kind=ConstraintKind.REVISION,
                value=self._revision(target, classification.commit),
                source=source,
            )
        if classification.kind == VersionKind.BRANCH:
            return ResolvedConstraint(
                name=requirement.path,
                kind=ConstraintKind.BRANCH,
                value=classification.value,
                source=source,
            )
        return ResolvedConstraint(
            name=requirement.path,
            kind=ConstraintKind.VERSION,
            value=classification.value,
            source=source,
        )

    def build_all(self, requirements: Iterable[ModuleRequirement]) -> List[ResolvedConstraint]:
        return [self.build(req) for req in requirements]

    def from_package_lock(self, project_root: str, lock: PackageLock) -> ResolvedConstraint:
        """Build the override for the lock chosen for ``project_root``."""
        if lock.version:
            if lock.version in Constants.DEFAULT_BRANCH_NAMES:
                return ResolvedConstraint(project_root, ConstraintKind.BRANCH, lock.version)
            return ResolvedConstraint(
                project_root, ConstraintKind.VERSION, "=" + (lock.version_exact or lock.version)
            )
        return ResolvedConstraint(
            project_root, ConstraintKind.REVISION, self._revision(project_root, lock.revision.strip())
        )

"""Fold package-level vendor locks onto project roots.

govendor allows different locks for packages of the same repository while a
Gopkg.toml override applies to a whole project, so locks are merged per
project root. When two packages disagree, the lock with the later revision
time wins and a warning is recorded.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from common.logging_utils import extra_context, is_debug_enabled
from versioning.models import PackageLock, VendorSource

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _lock_time(lock: PackageLock) -> datetime:
    stamp: Optional[datetime] = lock.revision_time
    if stamp is None:
        return _EPOCH
    if stamp.tzinfo is None:
        return stamp.replace(tzinfo=timezone.utc)
    return stamp


def _describe(lock: PackageLock) -> str:
    return f"{lock.path}@{lock.version}{lock.revision}"


@dataclass(frozen=True)
class ConflictWarning:
    """Two locks for one project disagreed; ``chosen`` names the winning package path."""
    project_root: str
    recorded: PackageLock
    candidate: PackageLock
    chosen: str

    def __str__(self) -> str:
        return (
            f"{self.project_root} version conflict "
            f"({_describe(self.recorded)} != {_describe(self.candidate)}); "
            f"chose {self.chosen} (latest)"
        )


@dataclass
class MergeResult:
    """Locks keyed by project root in lexicographic order."""
    projects: Dict[str, PackageLock] = field(default_factory=dict)
    warnings: List[ConflictWarning] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)


def is_excluded(path: str, prefixes: Iterable[str]) -> bool:
    return any(path.startswith(prefix) for prefix in prefixes)


class ConflictResolver:
    """Merge vendor locks; ``canonicalize`` maps a package path to its project root."""

    def __init__(self, canonicalize: Callable[[str], str]):
        self.canonicalize = canonicalize

    def merge(self, sources: Iterable[VendorSource]) -> MergeResult:
        result = MergeResult()
        versions: Dict[str, PackageLock] = {}

        for source in sources:
            for lock in source.locks:
                if is_excluded(lock.path, source.exclude_prefixes):
                    logger.info("ignoring package %s", lock.path)
                    result.ignored.append(lock.path)
                    continue

                root = self.canonicalize(lock.path)
                recorded = versions.get(root)
                if recorded is None:
                    versions[root] = lock
                    continue

                if lock.version == recorded.version and lock.revision == recorded.revision:
                    continue

                if _lock_time(lock) > _lock_time(recorded):
                    versions[root] = lock
                    chosen = lock.path
                else:
                    chosen = recorded.path
                warning = ConflictWarning(root, recorded, lock, chosen)
                logger.warning("%s", warning)
                result.warnings.append(warning)

        for root in sorted(versions):
            result.projects[root] = versions[root]

        if is_debug_enabled(logger):
            logger.debug(
                "Merged vendor locks",
                extra=extra_context(
                    event="merge",
                    component="conflicts",
                    action="merge",
                    count=len(result.projects),
                    warnings=len(result.warnings),
                    ignored=len(result.ignored),
                ),
            )
        return result

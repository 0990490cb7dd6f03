"""Expand abbreviated commit hashes against real repository history."""
from __future__ import annotations

import logging
import tempfile
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from common.errors import AmbiguousOrMissingRevision, FetchFailure
from constants import Constants

logger = logging.getLogger(__name__)


def open_repository(path: str):
    """Open the git repository containing ``path`` with GitPython."""
    import git  # pylint: disable=import-outside-toplevel

    try:
        return git.Repo(path, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as exc:
        raise FetchFailure(f"no git repository found at {path}") from exc


def iter_commit_hashes(repo) -> Iterator[str]:
    """Yield the full hash of every commit reachable from any ref."""
    for commit in repo.iter_commits("--all"):
        yield commit.hexsha


class SHAResolver:
    """Resolve ``(import path, abbreviated hash)`` to a full commit hash.

    A working copy is fetched into ``config.gopath`` when set, otherwise into a
    private temporary directory that is removed when resolution finishes.
    """

    def __init__(self, config, fetcher, opener: Callable = open_repository):
        self.config = config
        self.fetcher = fetcher
        self._open = opener

    @contextmanager
    def _workdir(self) -> Iterator[str]:
        if self.config.gopath:
            yield self.config.gopath
            return
        with tempfile.TemporaryDirectory(prefix=Constants.TEMP_DIR_PREFIX) as tmp:
            yield tmp

    def resolve(self, import_path: str, abbreviated: str) -> str:
        prefix = abbreviated.lower()
        if len(prefix) >= Constants.FULL_SHA_LENGTH:
            return prefix
        with self._workdir() as workdir:
            repo_path = self.fetcher.fetch(import_path, workdir)
            repo = self._open(repo_path)
            full = self._scan(repo, prefix, import_path)
        logger.info("Expanded commit SHA %s to %s", abbreviated, full)
        return full

    def _scan(self, repo, prefix: str, import_path: str) -> str:
        matches: List[str] = []
        for sha in iter_commit_hashes(repo):
            if sha.startswith(prefix) and sha not in matches:
                matches.append(sha)
                if len(matches) > 1 and self.config.sha_match_policy == "strict":
                    raise AmbiguousOrMissingRevision(prefix, import_path, matches)

        chosen: Optional[str] = matches[-1] if matches else None
        if chosen is None:
            raise AmbiguousOrMissingRevision(prefix, import_path)
        if len(matches) > 1:
            logger.warning(
                "commit prefix %s matches %d commits in %s (%s); using %s, the last one in history order",
                prefix, len(matches), import_path, ", ".join(matches), chosen,
            )
        return chosen

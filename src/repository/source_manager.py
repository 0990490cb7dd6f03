"""Git-backed source manager.

Lists the versions a project publishes, picks the one a Gopkg.toml constraint
selects, and exports that tree into a private temporary directory.
"""
from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

import semantic_version

from common.errors import FetchFailure
from constants import Constants
from versioning.models import GopkgConstraint

from .fetch import is_transient_output, retry_fetch
from .project_root import ProjectCanonicalizer

logger = logging.getLogger(__name__)

_V_AFTER_OPERATOR = re.compile(r"(^|[\s,<>=~^!]+)v(?=\d)")


@dataclass(frozen=True)
class RemoteVersion:
    """A ref advertised by a remote repository."""
    name: str
    kind: str  # "tag" | "branch" | "revision"
    revision: str

    def __str__(self) -> str:
        if self.kind == "revision":
            return self.revision
        return f"{self.name} ({self.revision[:12]})"


def parse_ls_remote(output: str) -> List[RemoteVersion]:
    """Parse ``git ls-remote --tags --heads`` output; annotated tags resolve to their commit."""
    tags: Dict[str, str] = {}
    branches: Dict[str, str] = {}
    for line in output.splitlines():
        parts = line.strip().split("\t")
        if len(parts) != 2:
            continue
        sha, ref = parts
        if ref.startswith("refs/heads/"):
            branches[ref[len("refs/heads/"):]] = sha
        elif ref.startswith("refs/tags/"):
            name = ref[len("refs/tags/"):]
            if name.endswith("^{}"):
                tags[name[:-3]] = sha
            else:
                tags.setdefault(name, sha)
    versions = [RemoteVersion(name, "tag", sha) for name, sha in tags.items()]
    versions.extend(RemoteVersion(name, "branch", sha) for name, sha in branches.items())
    return versions


def _semver(name: str) -> Optional[semantic_version.Version]:
    try:
        return semantic_version.Version(name[1:] if name.startswith("v") else name)
    except ValueError:
        return None


def sort_for_upgrade(versions: List[RemoteVersion]) -> List[RemoteVersion]:
    """Order candidates: semver tags newest first, default branch, other branches, other tags."""
    semver_tags = [(v, _semver(v.name)) for v in versions if v.kind == "tag"]
    ordered = [v for v, _ in sorted(
        ((v, s) for v, s in semver_tags if s is not None), key=lambda pair: pair[1], reverse=True
    )]
    branches = [v for v in versions if v.kind == "branch"]
    defaults = Constants.DEFAULT_BRANCH_NAMES
    ordered.extend(sorted(
        branches,
        key=lambda v: (defaults.index(v.name) if v.name in defaults else len(defaults), v.name),
    ))
    ordered.extend(sorted((v for v, s in semver_tags if s is None), key=lambda v: v.name))
    return ordered


def _semver_spec(raw: str) -> Optional[semantic_version.SimpleSpec]:
    """Translate a dep version constraint; a bare version means caret, as in dep."""
    spec = _V_AFTER_OPERATOR.sub(r"\1", raw.strip())
    if spec.startswith("=") and not spec.startswith("=="):
        spec = "=" + spec
    if spec and spec[0].isdigit():
        spec = "^" + spec
    try:
        return semantic_version.SimpleSpec(spec)
    except ValueError:
        return None


def pick_version(constraint: GopkgConstraint, versions: List[RemoteVersion]) -> RemoteVersion:
    """Return the first version in upgrade order satisfying ``constraint``."""
    if constraint.revision and not constraint.branch and not constraint.version:
        return RemoteVersion(constraint.revision, "revision", constraint.revision)

    candidates = sort_for_upgrade(versions)
    chosen: Optional[RemoteVersion] = None
    if constraint.branch:
        chosen = next((v for v in candidates if v.kind == "branch" and v.name == constraint.branch), None)
    elif constraint.version:
        spec = _semver_spec(constraint.version)
        if spec is not None:
            for v in candidates:
                parsed = _semver(v.name) if v.kind == "tag" else None
                if parsed is not None and spec.match(parsed):
                    chosen = v
                    break
        if chosen is None:
            chosen = next((v for v in candidates if v.name == constraint.version), None)
    elif candidates:
        chosen = candidates[0]

    if chosen is None:
        matcher = constraint.branch or constraint.version or "any"
        raise FetchFailure(f"no version found for {constraint.name} with constraint {matcher}")
    logger.info("chose %s@%s", constraint.name, chosen)
    return chosen


class SourceManager:
    """Resolve and export projects named in a Gopkg.toml."""

    def __init__(self, config, canonicalizer: Optional[ProjectCanonicalizer] = None):
        self.config = config
        self.canonicalizer = canonicalizer or ProjectCanonicalizer()

    def deduce_project_root(self, import_path: str) -> str:
        return self.canonicalizer.deduce_project_root(import_path)

    def _git_env(self) -> Dict[str, str]:
        env = {"GIT_TERMINAL_PROMPT": "0"}
        if self.config.allow_insecure:
            env["GIT_SSL_NO_VERIFY"] = "true"
        return env

    def _url(self, project_root: str, source: str = "") -> str:
        target = source or project_root
        if "://" in target or target.startswith("git@"):
            return target
        return self.canonicalizer.repository_url(target)

    def _git_failure(self, message: str, exc) -> FetchFailure:
        output = str(getattr(exc, "stderr", "") or exc)
        return FetchFailure(message, output, transient=is_transient_output(output))

    def list_versions(self, project_root: str, source: str = "") -> List[RemoteVersion]:
        import git  # pylint: disable=import-outside-toplevel

        url = self._url(project_root, source)

        def _ls_remote() -> str:
            try:
                return git.cmd.Git().ls_remote(
                    "--tags", "--heads", url,
                    env=self._git_env(),
                    kill_after_timeout=self.config.timeout_sec,
                )
            except git.exc.GitCommandError as exc:
                raise self._git_failure(f"cannot list versions of {project_root}", exc) from exc

        output = retry_fetch(
            _ls_remote,
            what=project_root,
            retries=self.config.retry_max,
            base_delay=self.config.retry_base_delay_sec,
        )
        return parse_ls_remote(output)

    def clone(self, project_root: str, dest: str, source: str = "") -> str:
        import git  # pylint: disable=import-outside-toplevel

        url = self._url(project_root, source)
        logger.info("Cloning %s into %s", url, dest)
        try:
            git.Repo.clone_from(url, dest, env=self._git_env())
        except git.exc.GitCommandError as exc:
            shutil.rmtree(dest, ignore_errors=True)
            raise self._git_failure(f"cannot clone {url}", exc) from exc
        return dest

    @contextmanager
    def exported(self, constraint: GopkgConstraint) -> Iterator[str]:
        """Export the version of ``constraint.name`` it selects; the tree is removed on exit."""
        import git  # pylint: disable=import-outside-toplevel

        pinned = constraint.revision and not (constraint.branch or constraint.version)
        versions = [] if pinned else self.list_versions(constraint.name, constraint.source)
        chosen = pick_version(constraint, versions)
        with tempfile.TemporaryDirectory(prefix=Constants.TEMP_DIR_PREFIX) as tmp:
            export_dir = os.path.join(tmp, "export")
            retry_fetch(
                lambda: self.clone(constraint.name, export_dir, constraint.source),
                what=constraint.name,
                retries=self.config.retry_max,
                base_delay=self.config.retry_base_delay_sec,
            )
            try:
                git.Repo(export_dir).git.checkout(chosen.revision)
            except git.exc.GitCommandError as exc:
                raise self._git_failure(f"cannot check out {chosen} of {constraint.name}", exc) from exc
            yield export_dir

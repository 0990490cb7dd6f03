"""Fold package import paths onto the project (repository) root that owns them.

Known hosting sites are deduced from the path shape alone, the same way ``go
get`` and dep do; any other path is resolved through the ``go-import`` meta tag
served at ``https://<path>?go-get=1``.
"""
from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Optional, Tuple

from common.errors import ConfigurationError
from common import http_client

logger = logging.getLogger(__name__)

_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"^(?P<root>github\.com/[A-Za-z0-9_.\-]+/[A-Za-z0-9_.\-]+)(?:/.*)?$"), "github"),
    (re.compile(r"^(?P<root>bitbucket\.org/[A-Za-z0-9_.\-]+/[A-Za-z0-9_.\-]+)(?:/.*)?$"), "bitbucket"),
    (re.compile(r"^(?P<root>gitlab\.com/[A-Za-z0-9_.\-]+/[A-Za-z0-9_.\-]+)(?:/.*)?$"), "gitlab"),
    (re.compile(r"^(?P<root>gopkg\.in/(?:[A-Za-z0-9_\-]+/)?[A-Za-z0-9_.\-]+\.v[0-9]+(?:-unstable)?)(?:/.*)?$"), "gopkg.in"),
    (re.compile(r"^(?P<root>golang\.org/x/[A-Za-z0-9_.\-]+)(?:/.*)?$"), "golang.org/x"),
    (re.compile(r"^(?P<root>go\.googlesource\.com/[A-Za-z0-9_.\-]+)(?:/.*)?$"), "googlesource"),
    (re.compile(r"^(?P<root>launchpad\.net/(?:~[A-Za-z0-9_.\-]+/)?[A-Za-z0-9_.\-]+)(?:/.*)?$"), "launchpad"),
    (re.compile(r"^(?P<root>(?:[A-Za-z0-9_.\-]+/)*[A-Za-z0-9_.\-]+\.(?:git|hg|bzr|svn))(?:/.*)?$"), "vcs-suffix"),
]

_GOLANG_X_RE = re.compile(r"^golang\.org/x/(?P<name>[A-Za-z0-9_.\-]+)$")

_META_RE = re.compile(r"<meta\s+[^>]*>", re.IGNORECASE)
_NAME_RE = re.compile(r"""name\s*=\s*["']go-import["']""", re.IGNORECASE)
_CONTENT_RE = re.compile(r"""content\s*=\s*["']([^"']*)["']""", re.IGNORECASE)


def deduce_static_root(import_path: str) -> Optional[str]:
    """Return the project root for well-known hosts, or None."""
    path = import_path.strip().strip("/")
    for pattern, _ in _PATTERNS:
        match = pattern.match(path)
        if match:
            return match.group("root")
    return None


def parse_go_import_meta(body: str, import_path: str) -> Optional[Tuple[str, str, str]]:
    """Return ``(prefix, vcs, repo_url)`` of the go-import tag covering ``import_path``."""
    for tag in _META_RE.findall(body):
        if not _NAME_RE.search(tag):
            continue
        content = _CONTENT_RE.search(tag)
        if not content:
            continue
        fields = content.group(1).split()
        if len(fields) != 3:
            continue
        prefix, vcs, repo_url = fields
        if import_path == prefix or import_path.startswith(prefix + "/"):
            return prefix, vcs, repo_url
    return None


class ProjectCanonicalizer:
    """Memoizing import path -> project root deduction."""

    def __init__(self, fetch_text: Callable[[str], Optional[str]] = http_client.get_text):
        self._fetch_text = fetch_text
        self._roots: Dict[str, str] = {}
        self._urls: Dict[str, str] = {}

    def deduce_project_root(self, import_path: str) -> str:
        if import_path in self._roots:
            return self._roots[import_path]

        root = deduce_static_root(import_path)
        if root is None:
            root = self._deduce_vanity(import_path)
        self._roots[import_path] = root
        return root

    def repository_url(self, project_root: str) -> str:
        """Clone URL for a project root."""
        if project_root in self._urls:
            return self._urls[project_root]
        golang_x = _GOLANG_X_RE.match(project_root)
        if golang_x:
            return f"https://go.googlesource.com/{golang_x.group('name')}"
        if deduce_static_root(project_root) is not None:
            return f"https://{project_root}"
        self._deduce_vanity(project_root)
        return self._urls.get(project_root, f"https://{project_root}")

    def _deduce_vanity(self, import_path: str) -> str:
        path = import_path.strip().strip("/")
        body = self._fetch_text(f"https://{path}?go-get=1")
        meta = parse_go_import_meta(body, path) if body else None
        if meta is None:
            raise ConfigurationError(f"cannot deduce project root for import path {import_path}")
        prefix, vcs, repo_url = meta
        if vcs != "git":
            logger.warning("%s is served by %s; only git repositories can be fetched", prefix, vcs)
        self._urls[prefix] = repo_url
        logger.debug("Deduced project root %s for %s (%s)", prefix, import_path, repo_url)
        return prefix

"""Tests for project root deduction."""

from unittest.mock import MagicMock

import pytest

from common.errors import ConfigurationError
from repository.project_root import ProjectCanonicalizer, deduce_static_root, parse_go_import_meta

VANITY_PAGE = """<!DOCTYPE html>
<html><head>
<meta name="go-import" content="go.example.org/kit git https://git.example.org/kit.git">
<meta name="go-source" content="go.example.org/kit _ _ _">
</head></html>"""


class TestStaticRoots:
    """Hosting sites known by path shape."""

    @pytest.mark.parametrize("path,root", [
        ("github.com/acme/lib/sub/pkg", "github.com/acme/lib"),
        ("bitbucket.org/acme/lib", "bitbucket.org/acme/lib"),
        ("gopkg.in/yaml.v2", "gopkg.in/yaml.v2"),
        ("gopkg.in/acme/lib.v1/sub", "gopkg.in/acme/lib.v1"),
        ("golang.org/x/net/context", "golang.org/x/net"),
        ("example.com/repo.git/sub", "example.com/repo.git"),
    ])
    def test_known_hosts(self, path, root):
        assert deduce_static_root(path) == root

    def test_unknown_host(self):
        assert deduce_static_root("go.example.org/kit/log") is None


class TestVanityImports:
    """go-get meta tag discovery."""

    def test_parse_meta(self):
        assert parse_go_import_meta(VANITY_PAGE, "go.example.org/kit/log") == (
            "go.example.org/kit", "git", "https://git.example.org/kit.git",
        )

    def test_lookup_is_memoized(self):
        fetch = MagicMock(return_value=VANITY_PAGE)
        canon = ProjectCanonicalizer(fetch_text=fetch)
        assert canon.deduce_project_root("go.example.org/kit/log") == "go.example.org/kit"
        assert canon.deduce_project_root("go.example.org/kit/log") == "go.example.org/kit"
        fetch.assert_called_once_with("https://go.example.org/kit/log?go-get=1")
        assert canon.repository_url("go.example.org/kit") == "https://git.example.org/kit.git"

    def test_github_needs_no_lookup(self):
        fetch = MagicMock()
        canon = ProjectCanonicalizer(fetch_text=fetch)
        assert canon.deduce_project_root("github.com/acme/lib/x") == "github.com/acme/lib"
        assert canon.repository_url("github.com/acme/lib") == "https://github.com/acme/lib"
        fetch.assert_not_called()

    def test_golang_x_clones_from_googlesource(self):
        fetch = MagicMock()
        canon = ProjectCanonicalizer(fetch_text=fetch)
        assert canon.deduce_project_root("golang.org/x/net/context") == "golang.org/x/net"
        assert canon.repository_url("golang.org/x/net") == "https://go.googlesource.com/net"
        fetch.assert_not_called()

    def test_unresolvable_path(self):
        canon = ProjectCanonicalizer(fetch_text=MagicMock(return_value=None))
        with pytest.raises(ConfigurationError):
            canon.deduce_project_root("nowhere.example/thing")

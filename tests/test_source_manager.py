"""Tests for version listing and selection."""

import pytest

from common.errors import FetchFailure
from repository.source_manager import RemoteVersion, parse_ls_remote, pick_version, sort_for_upgrade
from versioning.models import GopkgConstraint

LS_REMOTE = "\n".join([
    "1111111111111111111111111111111111111111\trefs/heads/master",
    "2222222222222222222222222222222222222222\trefs/heads/feature",
    "3333333333333333333333333333333333333333\trefs/tags/v1.0.0",
    "4444444444444444444444444444444444444444\trefs/tags/v1.2.0",
    "5555555555555555555555555555555555555555\trefs/tags/v1.2.0^{}",
    "6666666666666666666666666666666666666666\trefs/tags/v2.0.0",
    "7777777777777777777777777777777777777777\trefs/tags/release-candidate",
])


class TestParseAndSort:
    """Remote refs."""

    def test_annotated_tags_resolve_to_commit(self):
        versions = {v.name: v for v in parse_ls_remote(LS_REMOTE)}
        assert versions["v1.2.0"].revision == "5" * 40
        assert versions["master"].kind == "branch"

    def test_upgrade_order(self):
        ordered = [v.name for v in sort_for_upgrade(parse_ls_remote(LS_REMOTE))]
        assert ordered == ["v2.0.0", "v1.2.0", "v1.0.0", "master", "feature", "release-candidate"]


class TestPickVersion:
    """Constraint matching."""

    versions = parse_ls_remote(LS_REMOTE)

    def test_branch(self):
        chosen = pick_version(GopkgConstraint("github.com/acme/lib", branch="master"), self.versions)
        assert chosen.revision == "1" * 40

    def test_caret_range(self):
        chosen = pick_version(GopkgConstraint("github.com/acme/lib", version="^1.0.0"), self.versions)
        assert chosen.name == "v1.2.0"

    def test_bare_version_means_caret(self):
        chosen = pick_version(GopkgConstraint("github.com/acme/lib", version="v1.0.0"), self.versions)
        assert chosen.name == "v1.2.0"

    def test_exact_version(self):
        chosen = pick_version(GopkgConstraint("github.com/acme/lib", version="=v1.0.0"), self.versions)
        assert chosen.name == "v1.0.0"

    def test_non_semver_tag(self):
        chosen = pick_version(GopkgConstraint("github.com/acme/lib", version="release-candidate"), self.versions)
        assert chosen.revision == "7" * 40

    def test_revision_only(self):
        chosen = pick_version(GopkgConstraint("github.com/acme/lib", revision="9" * 40), [])
        assert chosen == RemoteVersion("9" * 40, "revision", "9" * 40)

    def test_any_picks_newest(self):
        assert pick_version(GopkgConstraint("github.com/acme/lib"), self.versions).name == "v2.0.0"

    def test_no_match(self):
        with pytest.raises(FetchFailure, match="no version found"):
            pick_version(GopkgConstraint("github.com/acme/lib", branch="gone"), self.versions)

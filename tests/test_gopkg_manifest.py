"""Tests for the Gopkg.toml store and the override emitter."""

import pytest

try:
    import tomllib as toml  # type: ignore
except ImportError:
    import tomli as toml  # type: ignore

from common.errors import ConfigurationError
from constants import Constants, Markers
from registry.gopkg import GopkgManifest, OverrideEmitter
from versioning.models import ConstraintKind, ResolvedConstraint

FULL = "abc1234def567890abc1234def567890abc12345"

TEMPLATE = """\
# hand-written header
required = ["github.com/acme/tool"]

[[constraint]]
  name = "github.com/acme/app"
  branch = "master"
  [constraint.metadata]
    govendor-override = true
    govendor-exclude-prefixes = ["github.com/acme/app/internal"]

[[constraint]]
  name = "github.com/acme/other"
  version = "^1.2.0"

[[override]]
  name = "github.com/hand/written"
  revision = "0123456789abcdef0123456789abcdef01234567"

[prune]
  go-tests = true
"""


class TestOverrideEmitter:
    """Block rendering."""

    def test_block_layout(self):
        emitter = OverrideEmitter(Markers.GOMOD_OVERRIDDEN.value)
        block = emitter.format_block(ResolvedConstraint("example.com/foo", ConstraintKind.VERSION, "=v1.2.3"))
        assert block == (
            "[[override]]\n"
            '  name = "example.com/foo"\n'
            '  version = "=v1.2.3"\n'
            "  [override.metadata]\n"
            "    gomod-overridden = true\n"
        )

    def test_emitted_blocks_parse_back(self):
        constraints = [
            ResolvedConstraint("example.com/foo", ConstraintKind.VERSION, "=v1.2.3"),
            ResolvedConstraint("example.com/bar", ConstraintKind.REVISION, FULL, source="github.com/fork/bar"),
            ResolvedConstraint("example.com/baz", ConstraintKind.BRANCH, "master"),
        ]
        emitter = OverrideEmitter(Markers.GOVENDOR_OVERRIDDEN.value, Constants.GOVENDOR_NOTE)
        parsed = toml.loads(emitter.emit(constraints))["override"]

        assert [o["name"] for o in parsed] == ["example.com/foo", "example.com/bar", "example.com/baz"]
        assert parsed[0]["version"] == "=v1.2.3" and "revision" not in parsed[0]
        assert parsed[1]["revision"] == FULL and parsed[1]["source"] == "github.com/fork/bar"
        assert parsed[2]["branch"] == "master" and "version" not in parsed[2]
        assert all(o["metadata"] == {"govendor-overridden": True} for o in parsed)

    def test_control_characters_are_escaped(self):
        name = "example.com/odd\x7fname\x01"
        text = OverrideEmitter().emit([ResolvedConstraint(name, ConstraintKind.BRANCH, "master")])
        assert "\x7f" not in text
        assert toml.loads(text)["override"][0]["name"] == name

    def test_note_precedes_blocks(self):
        emitter = OverrideEmitter(Markers.GOMOD_OVERRIDDEN.value, Constants.GOMOD_NOTE)
        text = emitter.emit([ResolvedConstraint("example.com/foo", ConstraintKind.VERSION, "=v1.2.3")])
        assert text.startswith("\n# NOTE: this Gopkg.toml file was constructed using gooverride gomod\n")

    def test_nothing_to_emit(self):
        assert OverrideEmitter("x", ["note"]).emit([]) == ""


class TestGopkgManifest:
    """Reading and editing Gopkg.toml text."""

    def test_marked_constraints_and_prefixes(self):
        manifest = GopkgManifest(TEMPLATE)
        marked = manifest.marked_constraints(Markers.GOVENDOR_OVERRIDE.value)
        assert [c.name for c in marked] == ["github.com/acme/app"]
        assert marked[0].branch == "master"
        assert marked[0].exclude_prefixes(Markers.GOVENDOR_EXCLUDE_PREFIXES.value) == [
            "github.com/acme/app/internal"
        ]

    def test_exclude_prefixes_must_be_strings(self):
        manifest = GopkgManifest(
            '[[constraint]]\n  name = "a"\n  [constraint.metadata]\n    govendor-exclude-prefixes = [1, 2]\n'
        )
        with pytest.raises(ConfigurationError):
            manifest.constraints[0].exclude_prefixes(Markers.GOVENDOR_EXCLUDE_PREFIXES.value)

    def test_invalid_toml(self):
        with pytest.raises(ConfigurationError):
            GopkgManifest("[[constraint]\nname =")

    def test_rerun_replaces_injected_blocks(self):
        emitter = OverrideEmitter(Markers.GOVENDOR_OVERRIDDEN.value, Constants.GOVENDOR_NOTE)
        first = GopkgManifest(TEMPLATE).without_injected(
            [Markers.GOVENDOR_OVERRIDDEN.value], emitter.note_lines()
        ) + emitter.emit([ResolvedConstraint("example.com/foo", ConstraintKind.VERSION, "=v1.0.0")])

        second = GopkgManifest(first).without_injected(
            [Markers.GOVENDOR_OVERRIDDEN.value], emitter.note_lines()
        ) + emitter.emit([ResolvedConstraint("example.com/foo", ConstraintKind.VERSION, "=v2.0.0")])

        data = toml.loads(second)
        names = [o["name"] for o in data["override"]]
        assert names == ["github.com/hand/written", "example.com/foo"]
        assert data["override"][1]["version"] == "=v2.0.0"
        assert second.count("# NOTE:") == 1
        assert "# hand-written header" in second
        assert data["prune"] == {"go-tests": True}

    def test_legacy_marker_is_removed(self):
        text = TEMPLATE + '\n[[override]]\n  name = "old"\n  version = "=v1"\n  [override.metadata]\n    govendor-overriden=true\n'
        cleaned = GopkgManifest(text).without_injected(
            [Markers.GOVENDOR_OVERRIDDEN.value, Markers.GOVENDOR_OVERRIDDEN_LEGACY.value]
        )
        assert [o["name"] for o in toml.loads(cleaned)["override"]] == ["github.com/hand/written"]

    def test_inline_table_arrays_are_refused(self):
        manifest = GopkgManifest('override = [{name = "a", version = "=v1"}]\n')
        with pytest.raises(ConfigurationError):
            manifest.without_injected([Markers.GOMOD_OVERRIDDEN.value])


class TestPin:
    """The pin operation."""

    def test_appends_override_and_drops_constraint(self):
        result = GopkgManifest(TEMPLATE).pin("github.com/acme/other", FULL, "https://mirror.example/gopath/src")
        data = toml.loads(result)
        assert [c["name"] for c in data["constraint"]] == ["github.com/acme/app"]
        pinned = data["override"][-1]
        assert pinned == {
            "name": "github.com/acme/other",
            "revision": FULL,
            "source": "https://mirror.example/gopath/src/github.com/acme/other",
        }

    def test_replaces_existing_override_keeping_its_source(self):
        text = TEMPLATE + '\n[[override]]\n  name = "github.com/acme/other"\n  source = "github.com/fork/other"\n  version = "=v1"\n'
        data = toml.loads(GopkgManifest(text).pin("github.com/acme/other", FULL, "git.example"))
        others = [o for o in data["override"] if o["name"] == "github.com/acme/other"]
        assert others == [{
            "name": "github.com/acme/other",
            "revision": FULL,
            "source": "git.example/github.com/fork/other",
        }]

    def test_requires_full_revision(self):
        with pytest.raises(ConfigurationError):
            GopkgManifest(TEMPLATE).pin("github.com/acme/other", "abc1234")

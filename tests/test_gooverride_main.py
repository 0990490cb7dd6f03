"""Tests for the CLI entrypoint: output handling and exit codes."""

from unittest.mock import patch

import pytest

from common.errors import AmbiguousOrMissingRevision, FetchFailure, MalformedVersion
from constants import ExitCodes
from gooverride import main

FULL = "abc1234def567890abc1234def567890abc12345"


def run_main(argv):
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return excinfo.value.code


class TestExitCodes:
    """Errors map to distinct exit codes and suppress output."""

    @pytest.mark.parametrize("error,code", [
        (MalformedVersion("example.com/foo", "v1.0.0-a-b-c"), ExitCodes.RESOLUTION_ERROR),
        (AmbiguousOrMissingRevision("abc1234", "example.com/bar"), ExitCodes.RESOLUTION_ERROR),
        (FetchFailure("cannot go get example.com/bar", "fatal"), ExitCodes.CONNECTION_ERROR),
    ])
    def test_errors(self, tmp_path, capsys, error, code):
        out = tmp_path / "out.toml"
        with patch("cli_gomod.run_gomod", side_effect=error):
            assert run_main(["gomod", "-o", str(out)]) == code.value
        assert not out.exists()
        assert capsys.readouterr().out == ""

    def test_missing_input_file(self, tmp_path):
        assert run_main(["gomod", "-i", str(tmp_path / "missing.toml")]) == ExitCodes.FILE_ERROR.value

    def test_unmarked_template_is_a_config_error(self, tmp_path):
        template = tmp_path / "Gopkg.toml"
        template.write_text('[[constraint]]\n  name = "x"\n', encoding="utf-8")
        assert run_main(["gomod", "-i", str(template)]) == ExitCodes.CONFIG_ERROR.value

    def test_bad_config_file(self, tmp_path):
        assert run_main(["-c", str(tmp_path / "nope.yml"), "govendor"]) == ExitCodes.CONFIG_ERROR.value


class TestOutput:
    """Successful runs."""

    def test_gomod_writes_stdout(self, capsys):
        with patch("cli_gomod.run_gomod", return_value="[[override]]\n"):
            assert run_main(["gomod"]) == ExitCodes.SUCCESS.value
        assert capsys.readouterr().out == "[[override]]\n"

    def test_govendor_writes_file(self, tmp_path):
        out = tmp_path / "Gopkg.toml"
        with patch("cli_govendor.run_govendor", return_value="# done\n"):
            assert run_main(["govendor", "-o", str(out)]) == ExitCodes.SUCCESS.value
        assert out.read_text(encoding="utf-8") == "# done\n"

    def test_pin_edits_in_place(self, tmp_path):
        gopkg = tmp_path / "Gopkg.toml"
        gopkg.write_text('[[constraint]]\n  name = "github.com/acme/lib"\n', encoding="utf-8")
        code = run_main(["pin", "--name", "github.com/acme/lib", "--revision", FULL, "--file", str(gopkg)])
        assert code == ExitCodes.SUCCESS.value
        text = gopkg.read_text(encoding="utf-8")
        assert "[[constraint]]" not in text
        assert f'revision = "{FULL}"' in text

    def test_pin_with_short_revision_leaves_file_alone(self, tmp_path):
        gopkg = tmp_path / "Gopkg.toml"
        original = '[[constraint]]\n  name = "github.com/acme/lib"\n'
        gopkg.write_text(original, encoding="utf-8")
        code = run_main(["pin", "--name", "github.com/acme/lib", "--revision", "abc1234", "--file", str(gopkg)])
        assert code == ExitCodes.CONFIG_ERROR.value
        assert gopkg.read_text(encoding="utf-8") == original

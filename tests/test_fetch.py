"""Tests for the go get and git clone fetchers."""

import os
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from cli_config import FetchConfig
from common.errors import FetchFailure
from repository.fetch import GitCloneFetcher, GoGetFetcher, is_transient_output, retry_fetch


def completed(returncode=0, stdout=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout)


class TestGoGetFetcher:
    """Command line, environment and failure handling of go get."""

    def test_command_and_environment(self):
        runner = MagicMock(return_value=completed())
        fetcher = GoGetFetcher(FetchConfig(), runner=runner, base_env={"PATH": "/bin", "GOPATH": "/home/me/go"})
        path = fetcher.fetch("example.com/bar/pkg", "/tmp/gp")

        assert path == os.path.join("/tmp/gp", "src", "example.com", "bar", "pkg")
        args, kwargs = runner.call_args
        assert args[0] == ["go", "get", "-d", "-u", "example.com/bar/pkg"]
        assert kwargs["env"] == {"PATH": "/bin", "GOPATH": "/tmp/gp", "GO111MODULE": "off"}
        assert kwargs["timeout"] == FetchConfig().timeout_sec

    def test_base_environment_is_not_modified(self):
        base = {"GOPATH": "/home/me/go"}
        fetcher = GoGetFetcher(FetchConfig(), runner=MagicMock(return_value=completed()), base_env=base)
        fetcher.fetch("example.com/bar", "/tmp/gp")
        assert base == {"GOPATH": "/home/me/go"}

    def test_insecure_flag(self):
        runner = MagicMock(return_value=completed())
        GoGetFetcher(FetchConfig(allow_insecure=True), runner=runner, base_env={}).fetch("example.com/bar", "/tmp/gp")
        assert runner.call_args[0][0] == ["go", "get", "-d", "-u", "-insecure", "example.com/bar"]

    def test_no_go_files_is_benign(self):
        runner = MagicMock(return_value=completed(1, "can't load package: no Go files in /tmp/gp/src/example.com/bar"))
        fetcher = GoGetFetcher(FetchConfig(), runner=runner, base_env={})
        assert fetcher.fetch("example.com/bar", "/tmp/gp").endswith(os.path.join("example.com", "bar"))

    def test_build_constraints_is_benign(self):
        runner = MagicMock(return_value=completed(1, "build constraints exclude all Go files in /x"))
        GoGetFetcher(FetchConfig(), runner=runner, base_env={}).fetch("example.com/bar", "/tmp/gp")

    def test_other_failure_carries_output(self):
        runner = MagicMock(return_value=completed(1, "fatal: repository not found"))
        fetcher = GoGetFetcher(FetchConfig(), runner=runner, base_env={})
        with pytest.raises(FetchFailure) as excinfo:
            fetcher.fetch("example.com/bar", "/tmp/gp")
        assert "repository not found" in str(excinfo.value)
        assert excinfo.value.transient is False
        assert runner.call_count == 1

    @patch("repository.fetch.time.sleep")
    def test_timeout_is_retried(self, mock_sleep):
        runner = MagicMock(side_effect=[subprocess.TimeoutExpired("go", 5), completed()])
        fetcher = GoGetFetcher(FetchConfig(retry_max=3, retry_base_delay_sec=0.5), runner=runner, base_env={})
        fetcher.fetch("example.com/bar", "/tmp/gp")
        assert runner.call_count == 2
        mock_sleep.assert_called_once_with(0.5)

    @patch("repository.fetch.time.sleep")
    def test_retries_are_bounded(self, mock_sleep):
        runner = MagicMock(return_value=completed(128, "fatal: unable to access: Could not resolve host: example.com"))
        fetcher = GoGetFetcher(FetchConfig(retry_max=3, retry_base_delay_sec=1.0), runner=runner, base_env={})
        with pytest.raises(FetchFailure) as excinfo:
            fetcher.fetch("example.com/bar", "/tmp/gp")
        assert excinfo.value.transient is True
        assert runner.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    def test_missing_toolchain(self):
        runner = MagicMock(side_effect=FileNotFoundError("go"))
        with pytest.raises(FetchFailure, match="not installed"):
            GoGetFetcher(FetchConfig(), runner=runner, base_env={}).fetch("example.com/bar", "/tmp/gp")


class TestRetryHelpers:
    """Transient failure detection."""

    def test_transient_markers(self):
        assert is_transient_output("dial tcp: i/o timeout")
        assert not is_transient_output("fatal: repository not found")

    def test_non_transient_failure_is_not_retried(self):
        action = MagicMock(side_effect=FetchFailure("boom"))
        with pytest.raises(FetchFailure):
            retry_fetch(action, what="x", retries=5, base_delay=0)
        assert action.call_count == 1


class TestGitCloneFetcher:
    """Cloning the owning project root."""

    def test_clones_project_root(self, tmp_path):
        sm = MagicMock()
        sm.deduce_project_root.return_value = "github.com/acme/lib"
        sm.clone.side_effect = lambda root, dest: dest
        fetcher = GitCloneFetcher(FetchConfig(), sm)

        path = fetcher.fetch("github.com/acme/lib/sub/pkg", str(tmp_path))
        assert path == os.path.join(str(tmp_path), "github.com", "acme", "lib")
        sm.clone.assert_called_once_with("github.com/acme/lib", path)

    def test_existing_clone_is_reused(self, tmp_path):
        (tmp_path / "github.com" / "acme" / "lib" / ".git").mkdir(parents=True)
        sm = MagicMock()
        sm.deduce_project_root.return_value = "github.com/acme/lib"
        GitCloneFetcher(FetchConfig(), sm).fetch("github.com/acme/lib", str(tmp_path))
        sm.clone.assert_not_called()

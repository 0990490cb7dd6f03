"""Fetch a repository working copy for an import path.

Two strategies share one contract, ``fetch(import_path, workdir) -> path``:

* :class:`GoGetFetcher` runs ``go get -d`` in GOPATH mode with ``workdir`` as
  the GOPATH and returns ``<workdir>/src/<import path>``.
* :class:`GitCloneFetcher` clones the project root that owns the import path
  into ``<workdir>/<project root>`` using the source manager.

Both pass an explicit environment to the child process; ``os.environ`` is never
modified.
"""
from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Callable, Dict, List, Optional

from common.errors import FetchFailure
from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants

logger = logging.getLogger(__name__)


def is_transient_output(output: str) -> bool:
    lowered = output.lower()
    return any(marker in lowered for marker in Constants.TRANSIENT_FETCH_MARKERS)


def retry_fetch(action: Callable[[], str], *, what: str, retries: int, base_delay: float) -> str:
    """Run ``action`` and retry transient :class:`FetchFailure` with exponential backoff."""
    attempts = max(1, retries)
    for attempt in range(attempts):
        try:
            return action()
        except FetchFailure as exc:
            if not exc.transient or attempt == attempts - 1:
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Transient failure fetching %s (attempt %d/%d), retrying in %.1fs",
                what, attempt + 1, attempts, delay,
            )
            time.sleep(delay)
    raise FetchFailure(f"cannot fetch {what}")  # pragma: no cover


class GoGetFetcher:
    """Download sources with ``go get -d -u`` into a GOPATH."""

    def __init__(self, config, runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
                 base_env: Optional[Dict[str, str]] = None):
        self.config = config
        self._run = runner
        self._base_env = dict(os.environ if base_env is None else base_env)

    def command(self, import_path: str) -> List[str]:
        args = ["go", "get", "-d", "-u"]
        if self.config.allow_insecure:
            args.append("-insecure")
        args.append(import_path)
        return args

    def environment(self, gopath: str) -> Dict[str, str]:
        env = {k: v for k, v in self._base_env.items() if k not in ("GOPATH", "GO111MODULE")}
        env["GOPATH"] = gopath
        env["GO111MODULE"] = "off"
        return env

    def _is_benign(self, output: str, gopath: str) -> bool:
        return any(marker.format(gopath=gopath) in output for marker in Constants.BENIGN_FETCH_MARKERS)

    def _attempt(self, import_path: str, gopath: str) -> str:
        cmd = self.command(import_path)
        logger.info("Running %s in GOPATH %s", " ".join(cmd), gopath)
        with Timer() as t:
            try:
                result = self._run(
                    cmd,
                    env=self.environment(gopath),
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    timeout=self.config.timeout_sec,
                    check=False,
                )
            except subprocess.TimeoutExpired as exc:
                raise FetchFailure(
                    f"go get {import_path} timed out after {self.config.timeout_sec}s",
                    transient=True,
                ) from exc
            except FileNotFoundError as exc:
                raise FetchFailure("the go toolchain is not installed") from exc
        output = result.stdout or ""
        if is_debug_enabled(logger):
            logger.debug(
                "go get finished",
                extra=extra_context(
                    event="subprocess",
                    component="fetch",
                    action="go_get",
                    target=import_path,
                    returncode=result.returncode,
                    duration_ms=t.duration_ms(),
                ),
            )
        if result.returncode != 0 and not self._is_benign(output, gopath):
            raise FetchFailure(f"cannot go get {import_path}", output, transient=is_transient_output(output))
        return os.path.join(gopath, "src", *import_path.split("/"))

    def fetch(self, import_path: str, gopath: str) -> str:
        return retry_fetch(
            lambda: self._attempt(import_path, gopath),
            what=import_path,
            retries=self.config.retry_max,
            base_delay=self.config.retry_base_delay_sec,
        )


class GitCloneFetcher:
    """Clone the owning repository directly, without the go toolchain."""

    def __init__(self, config, source_manager):
        self.config = config
        self.source_manager = source_manager

    def fetch(self, import_path: str, workdir: str) -> str:
        root = self.source_manager.deduce_project_root(import_path)
        dest = os.path.join(workdir, *root.split("/"))
        if os.path.isdir(os.path.join(dest, ".git")):
            return dest
        return retry_fetch(
            lambda: self.source_manager.clone(root, dest),
            what=root,
            retries=self.config.retry_max,
            base_delay=self.config.retry_base_delay_sec,
        )

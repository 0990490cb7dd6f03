"""Module list from ``go list -json -m all``.

The command prints one JSON object per module, concatenated without a
separator; the first object is the main module itself.
"""
from __future__ import annotations

import json
import logging
import os
import subprocess
from typing import Any, Callable, Dict, List, Optional

from common.errors import ConfigurationError, FetchFailure
from common.logging_utils import Timer, extra_context, is_debug_enabled
from versioning.models import ModuleRequirement

logger = logging.getLogger(__name__)


def _iter_objects(output: str):
    decoder = json.JSONDecoder()
    pos = 0
    length = len(output)
    while True:
        while pos < length and output[pos].isspace():
            pos += 1
        if pos >= length:
            return
        try:
            obj, pos = decoder.raw_decode(output, pos)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"error parsing JSON from go list: {exc}") from exc
        yield obj


def _requirement(obj: Dict[str, Any]) -> Optional[ModuleRequirement]:
    path = obj.get("Path")
    version = obj.get("Version")
    if not path or not version:
        return None
    replace = obj.get("Replace") or {}
    return ModuleRequirement(
        path=path,
        version=version,
        indirect=bool(obj.get("Indirect")),
        replace_path=replace.get("Path") if replace.get("Version") else None,
        replace_version=replace.get("Version") or None,
    )


def parse_go_list(output: str) -> List[ModuleRequirement]:
    """Decode the module stream, skipping the main module."""
    requirements: List[ModuleRequirement] = []
    for index, obj in enumerate(_iter_objects(output)):
        if index == 0 or obj.get("Main"):
            continue
        req = _requirement(obj)
        if req is None:
            logger.warning("skipping go list entry without a version: %s", obj.get("Path", "?"))
            continue
        if obj.get("Replace") and req.replace_path is None:
            logger.warning(
                "%s is replaced by local directory %s; pinning the required version %s",
                req.path, obj["Replace"].get("Path", "?"), req.version,
            )
        requirements.append(req)
    return requirements


def run_go_list(module_dir: str, config, runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
                base_env: Optional[Dict[str, str]] = None) -> str:
    """Run ``go list -json -m all`` with modules enabled inside ``module_dir``."""
    env = dict(os.environ if base_env is None else base_env)
    env["GO111MODULE"] = "on"
    cmd = ["go", "list", "-json", "-m", "all"]
    with Timer() as t:
        try:
            result = runner(
                cmd,
                cwd=module_dir,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=config.timeout_sec,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise FetchFailure(f"go list timed out after {config.timeout_sec}s", transient=True) from exc
        except FileNotFoundError as exc:
            raise FetchFailure("the go toolchain is not installed") from exc
    if is_debug_enabled(logger):
        logger.debug(
            "go list finished",
            extra=extra_context(
                event="subprocess",
                component="golist",
                action="go_list",
                target=module_dir,
                returncode=result.returncode,
                duration_ms=t.duration_ms(),
            ),
        )
    if result.returncode != 0:
        raise FetchFailure(
            "error running go list to determine complete dependency list", result.stderr or ""
        )
    return result.stdout or ""

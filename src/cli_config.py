"""Runtime configuration for repository fetching.

Values are layered with the following precedence (highest first): CLI
arguments, environment variables, the YAML/JSON config file given with
``-c``, and finally the defaults in :class:`constants.Constants`.

Example config file::

    fetch:
      gopath: /var/cache/gooverride
      allow_insecure: false
      method: git
      timeout_sec: 120
      retries: 5
      retry_base_delay_sec: 2
      sha_match_policy: strict
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import yaml

from common.errors import ConfigurationError
from constants import Constants

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class FetchConfig:
    """Settings shared by the fetchers, SHA resolver and source manager."""
    gopath: Optional[str] = None
    allow_insecure: bool = False
    timeout_sec: float = Constants.FETCH_TIMEOUT_SEC
    retry_max: int = Constants.FETCH_RETRY_MAX
    retry_base_delay_sec: float = Constants.FETCH_RETRY_BASE_DELAY_SEC
    fetch_method: str = Constants.FETCH_METHOD
    sha_match_policy: str = Constants.SHA_MATCH_POLICY


def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML (or ``.json``) config file; returns {} when ``path`` is empty."""
    if not path:
        return {}
    if not os.path.isfile(path):
        raise ConfigurationError(f"config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"cannot parse config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping")
    logger.debug("Loaded configuration from %s", path)
    return data


def _truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_STRINGS


def _choice(value: Any, choices, what: str) -> str:
    text = str(value)
    if text not in choices:
        raise ConfigurationError(f"{what} must be one of {', '.join(choices)}, got {text!r}")
    return text


def _number(value: Any, cast, what: str):
    try:
        number = cast(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{what} must be a number, got {value!r}") from exc
    if number < 0:
        raise ConfigurationError(f"{what} must not be negative")
    return number


def build_fetch_config(args=None, environ: Optional[Mapping[str, str]] = None,
                       file_config: Optional[Mapping[str, Any]] = None) -> FetchConfig:
    """Merge CLI ``args``, ``environ`` and ``file_config`` into a :class:`FetchConfig`.

    An empty environment value counts as unset, matching the original
    ``GOMOD_OVERRIDE_*`` variables.
    """
    environ = os.environ if environ is None else environ
    section = (file_config or {}).get("fetch") or {}
    if not isinstance(section, dict):
        raise ConfigurationError("the fetch section of the config file must be a mapping")

    gopath = section.get("gopath") or None
    allow_insecure = _truthy(section.get("allow_insecure", False))
    method = section.get("method", Constants.FETCH_METHOD)
    timeout = section.get("timeout_sec", Constants.FETCH_TIMEOUT_SEC)
    retries = section.get("retries", Constants.FETCH_RETRY_MAX)
    base_delay = section.get("retry_base_delay_sec", Constants.FETCH_RETRY_BASE_DELAY_SEC)
    policy = section.get("sha_match_policy", Constants.SHA_MATCH_POLICY)

    if environ.get(Constants.ENV_GOPATH_OVERRIDE):
        gopath = environ[Constants.ENV_GOPATH_OVERRIDE]
    if environ.get(Constants.ENV_ALLOW_INSECURE):
        allow_insecure = True

    if getattr(args, "GOPATH", None):
        gopath = args.GOPATH
    if getattr(args, "ALLOW_INSECURE", False):
        allow_insecure = True
    if getattr(args, "FETCH_METHOD", None):
        method = args.FETCH_METHOD
    if getattr(args, "FETCH_TIMEOUT", None) is not None:
        timeout = args.FETCH_TIMEOUT
    if getattr(args, "FETCH_RETRIES", None) is not None:
        retries = args.FETCH_RETRIES
    if getattr(args, "SHA_MATCH_POLICY", None):
        policy = args.SHA_MATCH_POLICY

    return FetchConfig(
        gopath=gopath,
        allow_insecure=allow_insecure,
        timeout_sec=_number(timeout, float, "fetch timeout"),
        retry_max=max(1, _number(retries, int, "fetch retries")),
        retry_base_delay_sec=_number(base_delay, float, "retry base delay"),
        fetch_method=_choice(method, Constants.FETCH_METHODS, "fetch method"),
        sha_match_policy=_choice(policy, Constants.SHA_MATCH_POLICIES, "sha match policy"),
    )

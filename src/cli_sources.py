"""CLI helpers shared by the gomod and govendor subcommands."""

import logging
import sys

from cli_config import FetchConfig
from repository.fetch import GitCloneFetcher, GoGetFetcher
from repository.sha_resolver import SHAResolver
from repository.source_manager import SourceManager

logger = logging.getLogger(__name__)


def read_input(path=None) -> str:
    """Read the Gopkg.toml template from ``path`` or standard input."""
    if path:
        with open(path, "r", encoding="utf-8") as handle:
            return handle.read()
    return sys.stdin.read()


def build_fetcher(config: FetchConfig, source_manager: SourceManager):
    if config.fetch_method == "git":
        return GitCloneFetcher(config, source_manager)
    return GoGetFetcher(config)


def build_resolver(config: FetchConfig, source_manager: SourceManager) -> SHAResolver:
    """SHA resolver wired to the fetcher selected by ``config.fetch_method``."""
    logger.debug("Using %s fetcher for commit lookups", config.fetch_method)
    return SHAResolver(config, build_fetcher(config, source_manager))

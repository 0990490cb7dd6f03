"""The ``gomod`` subcommand: pin a dep project to the go.mod requirements of another."""

import logging
import os

from analysis.conflicts import is_excluded
from cli_sources import build_resolver, read_input
from common.errors import ConfigurationError
from constants import Constants, Markers
from registry.gomod.golist import parse_go_list, run_go_list
from registry.gomod.modfile import read_requirements
from registry.gopkg.emitter import OverrideEmitter
from registry.gopkg.manifest import GopkgManifest
from repository.source_manager import SourceManager
from versioning.builder import ConstraintBuilder

logger = logging.getLogger(__name__)


def read_module_requirements(export_dir, config, use_go_list=False):
    """Requirements of the module exported at ``export_dir``."""
    if use_go_list:
        return parse_go_list(run_go_list(export_dir, config))
    gomod_path = os.path.join(export_dir, Constants.GOMOD_FILE)
    if not os.path.isfile(gomod_path):
        raise ConfigurationError(f"exported project has no {Constants.GOMOD_FILE}")
    with open(gomod_path, "r", encoding="utf-8") as handle:
        return read_requirements(handle.read())


def run_gomod(args, config, source_manager=None, resolver=None) -> str:
    """Return the template with overrides for every requirement of the marked project.

    The first ``[[constraint]]`` carrying ``gomod-override`` metadata names the
    project; overrides injected by an earlier run are replaced.
    """
    manifest = GopkgManifest(read_input(getattr(args, "INPUT", None)))
    marked = manifest.marked_constraints(Markers.GOMOD_OVERRIDE.value)
    if not marked:
        raise ConfigurationError(f"no package has {Markers.GOMOD_OVERRIDE.value} specified")
    target = marked[0]
    excluded = target.exclude_prefixes(Markers.GOMOD_EXCLUDE_PREFIXES.value)

    source_manager = source_manager or SourceManager(config)
    logger.info("fetching go.mod information for %s", target.name)
    with source_manager.exported(target) as export_dir:
        requirements = read_module_requirements(export_dir, config, getattr(args, "GO_LIST", False))

    kept = []
    for req in requirements:
        if is_excluded(req.path, excluded):
            logger.info("ignoring module %s", req.path)
            continue
        kept.append(req)

    builder = ConstraintBuilder(resolver or build_resolver(config, source_manager))
    constraints = builder.build_all(kept)

    emitter = OverrideEmitter(Markers.GOMOD_OVERRIDDEN.value, Constants.GOMOD_NOTE)
    base = manifest.without_injected([Markers.GOMOD_OVERRIDDEN.value], emitter.note_lines())
    return base + emitter.emit(constraints)

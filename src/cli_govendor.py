"""The ``govendor`` subcommand: turn vendor.json locks into dep overrides."""

import logging
import os

from analysis.conflicts import ConflictResolver
from cli_sources import build_resolver, read_input
from common.errors import ConfigurationError
from constants import Constants, Markers
from registry.gopkg.emitter import OverrideEmitter
from registry.gopkg.manifest import GopkgManifest
from registry.govendor.vendor_file import read_vendor_json
from repository.source_manager import SourceManager
from versioning.builder import ConstraintBuilder
from versioning.models import VendorSource

logger = logging.getLogger(__name__)


def fetch_vendor_source(source_manager, constraint) -> VendorSource:
    """Export ``constraint``'s project and read its vendor locks."""
    prefixes = constraint.exclude_prefixes(Markers.GOVENDOR_EXCLUDE_PREFIXES.value)
    logger.info("fetching govendor information for %s", constraint.name)
    with source_manager.exported(constraint) as export_dir:
        vendor_json = os.path.join(export_dir, Constants.VENDOR_DIR, Constants.VENDOR_JSON_FILE)
        if not os.path.isfile(vendor_json):
            raise ConfigurationError(
                f"{constraint.name} has no {Constants.VENDOR_DIR}/{Constants.VENDOR_JSON_FILE}"
            )
        locks = read_vendor_json(vendor_json)
    return VendorSource(origin=constraint.name, locks=locks, exclude_prefixes=prefixes)


def run_govendor(args, config, source_manager=None, resolver=None) -> str:
    """Return the manifest with one override per project locked by the marked projects."""
    manifest = GopkgManifest(read_input(getattr(args, "INPUT", None)))
    marked = manifest.marked_constraints(Markers.GOVENDOR_OVERRIDE.value)
    if not marked:
        logger.warning(
            "no package has %s specified; only previously injected overrides are removed",
            Markers.GOVENDOR_OVERRIDE.value,
        )

    source_manager = source_manager or SourceManager(config)
    sources = [fetch_vendor_source(source_manager, c) for c in marked]
    merged = ConflictResolver(source_manager.deduce_project_root).merge(sources)

    builder = ConstraintBuilder(resolver or build_resolver(config, source_manager))
    constraints = [builder.from_package_lock(root, lock) for root, lock in merged.projects.items()]

    emitter = OverrideEmitter(Markers.GOVENDOR_OVERRIDDEN.value, Constants.GOVENDOR_NOTE)
    base = manifest.without_injected(
        [Markers.GOVENDOR_OVERRIDDEN.value, Markers.GOVENDOR_OVERRIDDEN_LEGACY.value],
        emitter.note_lines(),
    )
    return base + emitter.emit(constraints)

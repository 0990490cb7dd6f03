"""The ``pin`` subcommand: force one project to a revision served by a mirror."""

import logging

from registry.gopkg.manifest import GopkgManifest

logger = logging.getLogger(__name__)


def run_pin(args) -> str:
    """Return the content of ``args.FILE`` with ``args.NAME`` pinned."""
    manifest = GopkgManifest.from_file(args.FILE)
    logger.info("pinning %s to %s", args.NAME, args.REVISION)
    return manifest.pin(args.NAME, args.REVISION, args.SERVER_PREFIX or "")

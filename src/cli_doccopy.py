"""The ``doccopy`` subcommand.

Copies a Terraform provider module from the module cache into ``vendor/`` so
that non-Go files (documentation, website sources) that ``go mod vendor``
leaves out are available to a build. The provider is looked up in
``vendor/modules.txt`` under ``github.com/<src-org>/<provider>`` and copied to
``vendor/github.com/<dest-org>/<provider>``.
"""

import logging
import os
import shutil

from common.errors import ConfigurationError
from constants import Constants
from registry.gomod.modules_txt import parse_modules_txt

logger = logging.getLogger(__name__)


def escape_module_path(path: str) -> str:
    """Module cache escaping: each uppercase letter becomes ``!`` plus its lowercase."""
    return "".join("!" + ch.lower() if ch.isupper() else ch for ch in path)


def default_gopath(environ=None) -> str:
    environ = os.environ if environ is None else environ
    gopath = environ.get("GOPATH", "")
    first = gopath.split(os.pathsep)[0] if gopath else ""
    if first:
        return first
    return os.path.join(environ.get("HOME") or os.path.expanduser("~"), "go")


def module_cache_dir(import_path: str, version: str, environ=None) -> str:
    return os.path.join(
        default_gopath(environ), "pkg", "mod", f"{escape_module_path(import_path)}@{version}"
    )


def copy_tree(src: str, dst: str) -> None:
    """Copy ``src`` to ``dst``; files end up 0644 and directories 0755."""
    shutil.copytree(src, dst)
    os.chmod(dst, 0o755)
    for root, dirs, files in os.walk(dst):
        for name in dirs:
            os.chmod(os.path.join(root, name), 0o755)
        for name in files:
            os.chmod(os.path.join(root, name), 0o644)


def run_doccopy(args, environ=None):
    """Copy the matching modules; returns the list of destination directories."""
    project_dir = os.path.abspath(args.DIR or ".")
    if not os.path.isfile(os.path.join(project_dir, Constants.GOMOD_FILE)):
        raise ConfigurationError(f"cannot find `{Constants.GOMOD_FILE}` file in {project_dir}")
    modules_txt = os.path.join(project_dir, Constants.VENDOR_DIR, Constants.MODULES_TXT_FILE)
    if not os.path.isfile(modules_txt):
        raise ConfigurationError(
            "cannot find vendor/modules.txt, first run `go mod vendor` and try again"
        )

    source_path = f"github.com/{args.SRC_ORG}/{args.PROVIDER}"
    dest_dir = os.path.join(project_dir, Constants.VENDOR_DIR, "github.com", args.DEST_ORG, args.PROVIDER)
    logger.info("%s => %s", source_path, dest_dir)

    with open(modules_txt, "r", encoding="utf-8") as handle:
        modules = parse_modules_txt(handle.read())

    copied = []
    for path, version in modules:
        if path != source_path:
            logger.debug("Ignoring import path: %s", path)
            continue
        module_dir = module_cache_dir(path, version, environ)
        logger.debug("Needs to copy from %s", module_dir)
        if not os.path.isdir(module_dir):
            raise ConfigurationError(f"module path {module_dir!r} does not exist, check $GOPATH/pkg/mod")
        if os.path.lexists(dest_dir):
            shutil.rmtree(dest_dir)
        copy_tree(module_dir, dest_dir)
        copied.append(dest_dir)

    if not copied:
        logger.warning("%s is not listed in %s", source_path, modules_txt)
    return copied

"""gooverride: reconcile Go dependency pins across go.mod, govendor and dep.

Subcommands:
  gomod     inject [[override]] pins from the go.mod of a marked project
  govendor  inject [[override]] pins from the vendor.json of marked projects
  pin       pin one project of a Gopkg.toml to a revision on a mirror
  doccopy   copy a provider module from the module cache into vendor/
"""

import logging
import os
import sys

from args import parse_args
from cli_config import build_fetch_config, load_config_file
from common.errors import GoOverrideError
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from constants import ExitCodes

logger = logging.getLogger(__name__)


def write_output(text, path=None):
    """Write the finished document to ``path`` or standard output."""
    if path:
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(text)
        logger.info("Wrote %s", path)
    else:
        sys.stdout.write(text)
        sys.stdout.flush()


def run(args):
    """Execute the selected subcommand; raises on any fatal condition."""
    # pylint: disable=import-outside-toplevel
    if args.action == "doccopy":
        from cli_doccopy import run_doccopy
        run_doccopy(args)
        return
    if args.action == "pin":
        from cli_pin import run_pin
        text = run_pin(args)
        write_output(text, args.OUTPUT or args.FILE)
        return

    config = build_fetch_config(args, os.environ, load_config_file(getattr(args, "CONFIG", None)))
    if args.action == "gomod":
        from cli_gomod import run_gomod
        text = run_gomod(args, config)
    else:
        from cli_govendor import run_govendor
        text = run_govendor(args, config)
    write_output(text, args.OUTPUT)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging("DEBUG" if args.VERBOSE else args.LOG_LEVEL)
    if args.LOG_FILE:
        add_file_handler(args.LOG_FILE)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.action)
        )

    try:
        run(args)
    except GoOverrideError as exc:
        logger.error("%s", exc)
        sys.exit(exc.exit_code.value)
    except OSError as exc:
        logger.error("%s", exc)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action=args.action, outcome="success")
        )
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()

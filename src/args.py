"""Argument parsing functionality for gooverride."""

import argparse
from constants import Constants


def _add_fetch_options(parser):
    """Options shared by the subcommands that fetch repositories."""
    parser.add_argument("-i", "--input",
                        dest="INPUT",
                        help="Gopkg.toml template to read (default: standard input)",
                        action="store",
                        type=str)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to write the resulting Gopkg.toml (default: standard output)",
                        action="store",
                        type=str)
    parser.add_argument("--gopath",
                        dest="GOPATH",
                        help="Reuse this GOPATH for fetches instead of a temporary one "
                             f"(env: {Constants.ENV_GOPATH_OVERRIDE})",
                        action="store",
                        type=str)
    parser.add_argument("--allow-insecure",
                        dest="ALLOW_INSECURE",
                        help=f"Permit insecure transports when fetching (env: {Constants.ENV_ALLOW_INSECURE})",
                        action="store_true")
    parser.add_argument("--fetch-method",
                        dest="FETCH_METHOD",
                        help="How to obtain a working copy for commit lookups (default: go-get). "
                             "go-get runs GOPATH-mode 'go get -d', which current Go releases no longer "
                             "support; use git with those toolchains",
                        action="store",
                        type=str,
                        choices=Constants.FETCH_METHODS)
    parser.add_argument("--fetch-timeout",
                        dest="FETCH_TIMEOUT",
                        help=f"Seconds before a fetch is aborted (default: {Constants.FETCH_TIMEOUT_SEC})",
                        action="store",
                        type=float)
    parser.add_argument("--fetch-retries",
                        dest="FETCH_RETRIES",
                        help=f"Attempts for transient fetch failures (default: {Constants.FETCH_RETRY_MAX})",
                        action="store",
                        type=int)
    parser.add_argument("--sha-match-policy",
                        dest="SHA_MATCH_POLICY",
                        help="strict: an abbreviated hash matching several commits is an error; "
                             "last: use the last match in history order",
                        action="store",
                        type=str,
                        choices=Constants.SHA_MATCH_POLICIES)


def build_parser():
    """Build the top-level parser with one subparser per tool."""
    parser = argparse.ArgumentParser(
        prog="gooverride",
        description=(
            "gooverride - reconcile go.mod, govendor and dep version pins"
        ),
        add_help=True,
    )
    parser.add_argument("-v", "--verbose",
                        dest="VERBOSE",
                        help="Verbose output (same as --loglevel DEBUG)",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)

    subparsers = parser.add_subparsers(dest="action", metavar="<command>")
    subparsers.required = True

    gomod = subparsers.add_parser(
        "gomod",
        help="Inject overrides for the go.mod requirements of a marked project",
    )
    _add_fetch_options(gomod)
    gomod.add_argument("--go-list",
                       dest="GO_LIST",
                       help="Read requirements from `go list -json -m all` instead of go.mod",
                       action="store_true")

    govendor = subparsers.add_parser(
        "govendor",
        help="Inject overrides for the vendor.json locks of marked projects",
    )
    _add_fetch_options(govendor)

    pin = subparsers.add_parser(
        "pin",
        help="Pin one project of a Gopkg.toml to a revision served from a mirror",
    )
    pin.add_argument("--name",
                     dest="NAME",
                     help="The name of the project to modify",
                     action="store",
                     type=str,
                     required=True)
    pin.add_argument("--revision",
                     dest="REVISION",
                     help="The revision of the project to pin to",
                     action="store",
                     type=str,
                     required=True)
    pin.add_argument("--server-prefix",
                     dest="SERVER_PREFIX",
                     help="The url of a git server that exposes $GOPATH",
                     action="store",
                     type=str,
                     default="")
    pin.add_argument("--file",
                     dest="FILE",
                     help="The path to the Gopkg.toml to modify",
                     action="store",
                     type=str,
                     default=Constants.GOPKG_FILE)
    pin.add_argument("-o", "--output",
                     dest="OUTPUT",
                     help="Write the result here instead of editing --file in place",
                     action="store",
                     type=str)

    doccopy = subparsers.add_parser(
        "doccopy",
        help="Copy a provider module from the module cache into vendor/",
    )
    doccopy.add_argument("--src-org",
                         dest="SRC_ORG",
                         help="Source provider GitHub org",
                         action="store",
                         type=str,
                         default=Constants.DOCCOPY_DEFAULT_ORG)
    doccopy.add_argument("--dest-org",
                         dest="DEST_ORG",
                         help="Destination provider GitHub org",
                         action="store",
                         type=str,
                         default=Constants.DOCCOPY_DEFAULT_ORG)
    doccopy.add_argument("--provider",
                         dest="PROVIDER",
                         help="Provider name",
                         action="store",
                         type=str,
                         required=True)
    doccopy.add_argument("--dir",
                         dest="DIR",
                         help="Project root containing go.mod and vendor/modules.txt (default: current directory)",
                         action="store",
                         type=str,
                         default=".")

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)

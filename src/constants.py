"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    CONFIG_ERROR = 4


class Markers(Enum):
    """Gopkg.toml metadata keys understood by the program.

    Args:
        Enum (string): Metadata key names.
    """

    GOMOD_OVERRIDE = "gomod-override"
    GOMOD_OVERRIDDEN = "gomod-overridden"
    GOMOD_EXCLUDE_PREFIXES = "gomod-exclude-prefixes"
    GOVENDOR_OVERRIDE = "govendor-override"
    GOVENDOR_OVERRIDDEN = "govendor-overridden"
    # Written by early govendor-override releases; still recognized on removal.
    GOVENDOR_OVERRIDDEN_LEGACY = "govendor-overriden"
    GOVENDOR_EXCLUDE_PREFIXES = "govendor-exclude-prefixes"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    ENV_LOG_LEVEL = "GOOVERRIDE_LOG_LEVEL"

    GOPKG_FILE = "Gopkg.toml"
    GOMOD_FILE = "go.mod"
    VENDOR_DIR = "vendor"
    VENDOR_JSON_FILE = "vendor.json"
    MODULES_TXT_FILE = "modules.txt"

    FULL_SHA_LENGTH = 40
    INCOMPATIBLE_SUFFIX = "+incompatible"
    DEFAULT_BRANCH_NAMES = ["master", "main"]

    # Repository fetching
    ENV_GOPATH_OVERRIDE = "GOMOD_OVERRIDE_GOPATH"
    ENV_ALLOW_INSECURE = "GOMOD_OVERRIDE_ALLOW_INSECURE"
    FETCH_METHODS = ["go-get", "git"]
    FETCH_METHOD = "go-get"
    FETCH_TIMEOUT_SEC = 300
    FETCH_RETRY_MAX = 3
    FETCH_RETRY_BASE_DELAY_SEC = 1.0
    SHA_MATCH_POLICIES = ["strict", "last"]
    SHA_MATCH_POLICY = "strict"
    TEMP_DIR_PREFIX = "gooverride-"

    # Output of `go get` that does not indicate a failed download.
    BENIGN_FETCH_MARKERS = [
        "no Go files in {gopath}",
        "build constraints exclude all Go files",
    ]
    TRANSIENT_FETCH_MARKERS = [
        "could not resolve host",
        "connection timed out",
        "connection reset",
        "i/o timeout",
        "tls handshake timeout",
        "the remote end hung up unexpectedly",
        "502 bad gateway",
        "503 service unavailable",
    ]

    # HTTP (go-get vanity import discovery)
    REQUEST_TIMEOUT = 30
    HTTP_RETRY_MAX = 3
    HTTP_CACHE_TTL_SEC = 300

    # NOTE comments written above injected overrides
    GOMOD_NOTE = ["this Gopkg.toml file was constructed using gooverride gomod"]
    GOVENDOR_NOTE = [
        "the following overrides were injected by gooverride govendor. It may be necessary to",
        "remove some of these overrides in order to produce a buildable vendor tree.",
    ]

    # doccopy
    DOCCOPY_DEFAULT_ORG = "terraform-providers"

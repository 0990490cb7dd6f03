"""Error taxonomy.

Components raise these; only the CLI entrypoint turns them into an exit code.
"""
from __future__ import annotations

from constants import ExitCodes


class GoOverrideError(Exception):
    """Base class for every fatal condition of a run."""

    exit_code = ExitCodes.FILE_ERROR


class ConfigurationError(GoOverrideError):
    """Required input is missing or malformed (e.g. no project marked for override)."""

    exit_code = ExitCodes.CONFIG_ERROR


class MalformedVersion(GoOverrideError):
    """A version string does not follow the expected pseudo-version grammar."""

    exit_code = ExitCodes.RESOLUTION_ERROR

    def __init__(self, path: str, version: str, detail: str = "unexpected prerelease format"):
        self.path = path
        self.version = version
        super().__init__(f"{detail} for {path}: {version!r}")


class FetchFailure(GoOverrideError):
    """A repository or project could not be retrieved."""

    exit_code = ExitCodes.CONNECTION_ERROR

    def __init__(self, message: str, output: str = "", transient: bool = False):
        self.output = output
        self.transient = transient
        if output:
            message = f"{message}:\n{output.rstrip()}"
        super().__init__(message)


class AmbiguousOrMissingRevision(GoOverrideError):
    """An abbreviated commit hash matched no commit, or more than one."""

    exit_code = ExitCodes.RESOLUTION_ERROR

    def __init__(self, abbreviated: str, import_path: str, matches=None):
        self.abbreviated = abbreviated
        self.import_path = import_path
        self.matches = list(matches or [])
        if self.matches:
            message = (
                f"commit prefix {abbreviated} is ambiguous in {import_path}: "
                + ", ".join(self.matches)
            )
        else:
            message = f"no commit matches prefix {abbreviated} in {import_path}"
        super().__init__(message)

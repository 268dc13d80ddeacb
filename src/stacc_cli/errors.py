"""Error taxonomy for the stacc installer.

Every fatal condition maps to one InstallerError subclass carrying the
message, an optional hint and the process exit code.
"""

from dataclasses import dataclass

EXIT_USAGE = 2
EXIT_SOURCE = 3
EXIT_TERMINAL = 4
EXIT_CONFLICT = 5


@dataclass
class InstallerError(Exception):
    """Base error class for installer errors."""

    message: str
    hint: str | None = None
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


@dataclass
class UsageError(InstallerError):
    """Bad CLI input (unknown category, editor, bundle or server name)."""

    exit_code: int = EXIT_USAGE


@dataclass
class SourceEnvironmentError(InstallerError):
    """Required source directory or document is missing or unreadable."""

    exit_code: int = EXIT_SOURCE


@dataclass
class TerminalUnavailableError(InstallerError):
    """A prompt is required but no interactive terminal is attached."""

    hint: str | None = (
        "Pass --yes to run non-interactively, or supply --cursor/--claude/..., "
        "--global/--project, --categories and --conflict explicitly."
    )
    exit_code: int = EXIT_TERMINAL


@dataclass
class ConflictUnresolvedError(InstallerError):
    """A conflict needs a decision that cannot be obtained safely."""

    exit_code: int = EXIT_CONFLICT


@dataclass
class InstallAborted(InstallerError):
    """The user declined the confirmation prompt."""

    message: str = "aborted"

"""
Standard exit codes for gourcers.

Following Unix/POSIX conventions for command-line tools.
"""

from .domain.rules import RuleParseError
from .infra.errors import (
    CatalogError,
    EmptySelectionError,
    EncodeError,
    MergeError,
    PipelineAbortedError,
    RenderError,
    ToolMissingError,
)

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NO_REPOS_FOUND = 64      # No repositories matched the rules
API_ERROR = 65           # GitHub API call failed
CONFIG_ERROR = 66        # Configuration or rule file error
DATA_ERROR = 70          # Data format or validation error
PARTIAL_SUCCESS = 71     # Some repositories failed, the video was still produced
DEPENDENCY_ERROR = 72    # A required external tool is missing
PIPELINE_ERROR = 73      # Merge, render or encode stage failed
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for gourcers exceptions, most specific first
EXCEPTION_EXIT_CODES = (
    (RuleParseError, CONFIG_ERROR),
    (ToolMissingError, DEPENDENCY_ERROR),
    (CatalogError, API_ERROR),
    (EmptySelectionError, NO_REPOS_FOUND),
    (PipelineAbortedError, PIPELINE_ERROR),
    (MergeError, PIPELINE_ERROR),
    (RenderError, PIPELINE_ERROR),
    (EncodeError, PIPELINE_ERROR),
    (KeyboardInterrupt, INTERRUPTED),
)


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    for exc_type, code in EXCEPTION_EXIT_CODES:
        if isinstance(exc, exc_type):
            return code
    return GENERAL_ERROR


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)

"""
Error types raised by gourcers infrastructure and services.

Per-repository errors (FetchError, NormalizeError) are caught at the task
boundary. Everything else is fatal for the run.
"""

from typing import Iterable, Optional


class GourcersError(Exception):
    """Base class for gourcers errors."""


class ToolMissingError(GourcersError):
    """One or more collaborator binaries could not be run."""

    def __init__(self, tools: Iterable[str], details: Optional[Iterable[str]] = None):
        self.tools = list(tools)
        self.details = list(details or [])
        message = "missing required tools: " + ", ".join(self.tools)
        if self.details:
            message += " (" + "; ".join(self.details) + ")"
        super().__init__(message)


class ProcessFailedError(GourcersError):
    """A collaborator process exited with a non-zero status."""

    def __init__(self, tool: str, exit_code: Optional[int], stderr: str = ""):
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr.strip()
        message = f"{tool} exited with status {exit_code}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)


class RepositoryError(GourcersError):
    """An error tied to one repository; wraps the underlying cause."""

    action = "process"

    def __init__(self, repo_name: str, cause: Exception):
        self.repo_name = repo_name
        self.cause = cause
        super().__init__(f"failed to {self.action} {repo_name}: {cause}")


class FetchError(RepositoryError):
    action = "fetch"


class NormalizeError(RepositoryError):
    action = "generate gource log for"


class CatalogError(GourcersError):
    """The repository catalog could not be fetched."""


class MergeError(GourcersError):
    """Per-repository logs could not be combined and sorted."""


class RenderError(GourcersError):
    """The renderer failed."""


class EncodeError(GourcersError):
    """The encoder failed."""


class EmptySelectionError(GourcersError):
    """No repository survived the selection rules."""


class PipelineAbortedError(GourcersError):
    """Per-repository failures left nothing (or not enough) to merge."""

    def __init__(self, failures: Iterable[str], reason: str = "run aborted after task failure"):
        self.failures = list(failures)
        super().__init__(f"{reason}: " + "; ".join(self.failures))

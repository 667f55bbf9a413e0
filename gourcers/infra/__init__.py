"""
Infrastructure layer for gourcers.

Contains abstractions for external systems:
- GitClient: clone/pull working copies
- GourceClient: log extraction and render commands
- GitHubClient: repository catalog from the GitHub API
- ManagedProcess / ProcessPipeline: subprocess plumbing

These provide clean interfaces that can be mocked for testing.
"""

from .errors import (
    GourcersError,
    ToolMissingError,
    ProcessFailedError,
    FetchError,
    NormalizeError,
    CatalogError,
    MergeError,
    RenderError,
    EncodeError,
    EmptySelectionError,
    PipelineAbortedError,
)
from .git_client import GitClient
from .gource_client import GourceClient
from .github_client import GitHubClient, RateLimitStatus
from .process import ManagedProcess, ProcessPipeline
from .dependencies import check_dependencies, required_tools, DependencyStatus

__all__ = [
    'GourcersError',
    'ToolMissingError',
    'ProcessFailedError',
    'FetchError',
    'NormalizeError',
    'CatalogError',
    'MergeError',
    'RenderError',
    'EncodeError',
    'EmptySelectionError',
    'PipelineAbortedError',
    'GitClient',
    'GourceClient',
    'GitHubClient',
    'RateLimitStatus',
    'ManagedProcess',
    'ProcessPipeline',
    'check_dependencies',
    'required_tools',
    'DependencyStatus',
]

"""
Domain layer for gourcers.

Contains pure domain objects with no I/O or side effects:
- Repository: A repository descriptor from the catalog
- RuleSet: Parsed selection rules and their verdicts
- TaskResult / PipelineSummary: Outcomes of per-repository tasks
"""

from .repository import Repository
from .rules import (
    Selector,
    RuleEntry,
    RuleSet,
    RuleErrorKind,
    RuleParseError,
    Verdict,
    Include,
    Exclude,
    Default,
)
from .operation import (
    TaskStatus,
    TaskStage,
    TaskResult,
    FailurePolicy,
    PipelineSummary,
)

__all__ = [
    'Repository',
    'Selector',
    'RuleEntry',
    'RuleSet',
    'RuleErrorKind',
    'RuleParseError',
    'Verdict',
    'Include',
    'Exclude',
    'Default',
    'TaskStatus',
    'TaskStage',
    'TaskResult',
    'FailurePolicy',
    'PipelineSummary',
]

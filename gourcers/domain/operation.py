"""
Task result domain objects for gourcers.

Each repository travels through fetch and normalize as one task. These
types record how each task ended and summarize a whole run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from .repository import Repository


class TaskStatus(Enum):
    """Terminal state of a per-repository task."""
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TaskStage(Enum):
    """Stage a task was in when it ended."""
    FETCH = "fetch"
    NORMALIZE = "normalize"
    DONE = "done"


class FailurePolicy(Enum):
    """What a single repository's failure does to the rest of the run."""
    ISOLATE = "isolate"   # report, drop the repository, keep going
    ABORT = "abort"       # cancel pending tasks, fail the run after the barrier

    @classmethod
    def parse(cls, value: str) -> 'FailurePolicy':
        try:
            return cls(value.lower())
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown failure policy {value!r} (expected one of: {choices})") from None


@dataclass
class TaskResult:
    """Outcome of one repository's fetch + normalize chain."""
    repo: Repository
    status: TaskStatus
    stage: TaskStage = TaskStage.DONE
    fetched: Optional[str] = None  # "cloned", "pulled" or "skipped"
    log_path: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == TaskStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            'repo': self.repo.full_name,
            'status': self.status.value,
            'stage': self.stage.value,
        }
        if self.fetched:
            result['fetched'] = self.fetched
        if self.log_path:
            result['log_path'] = self.log_path
        if self.error:
            result['error'] = self.error
        return result


@dataclass
class PipelineSummary:
    """
    Summary of the per-repository stage of a run.

    Results are kept in catalog order regardless of completion order,
    so the merge stage reads logs deterministically.
    """
    policy: FailurePolicy = FailurePolicy.ISOLATE
    total: int = 0
    successful: int = 0
    failed: int = 0
    cancelled: int = 0
    results: List[TaskResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if no task failed."""
        return self.failed == 0 and self.cancelled == 0

    @property
    def succeeded_repos(self) -> List[Repository]:
        return [r.repo for r in self.results if r.ok]

    def add_result(self, result: TaskResult) -> None:
        """Add a task result and update counts."""
        self.results.append(result)
        self.total += 1

        if result.status == TaskStatus.SUCCESS:
            self.successful += 1
        elif result.status == TaskStatus.FAILED:
            self.failed += 1
            if result.error:
                self.errors.append(f"{result.repo.full_name}: {result.error}")
        elif result.status == TaskStatus.CANCELLED:
            self.cancelled += 1

    def sort_by(self, catalog: List[Repository]) -> None:
        """Reorder results to follow ``catalog``."""
        order = {repo.full_name: i for i, repo in enumerate(catalog)}
        self.results.sort(key=lambda r: order.get(r.repo.full_name, len(order)))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'type': 'summary',
            'policy': self.policy.value,
            'total': self.total,
            'successful': self.successful,
            'failed': self.failed,
            'cancelled': self.cancelled,
            'errors': self.errors,
        }

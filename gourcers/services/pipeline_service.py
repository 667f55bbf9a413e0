"""
Pipeline orchestration service for gourcers.

Runs a whole visualization:

    select -> [fetch -> normalize] x N (concurrent) -> barrier -> merge/sort -> render

Each repository's fetch + normalize chain is one task. Tasks run on a
thread pool in no particular order and share nothing except their own
output files. The merge stage starts only once every task has reached a
terminal state.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, List, Optional, Tuple

from ..domain.operation import (
    FailurePolicy,
    PipelineSummary,
    TaskResult,
    TaskStage,
    TaskStatus,
)
from ..domain.repository import Repository
from ..domain.rules import RuleSet, Verdict
from ..infra.errors import (
    EmptySelectionError,
    FetchError,
    GourcersError,
    NormalizeError,
    PipelineAbortedError,
)
from ..infra.git_client import GitClient
from ..workspace import Workspace
from .log_service import LogService
from .merge_service import MergeService
from .render_service import EncodeOptions, RenderOptions, RenderService

logger = logging.getLogger(__name__)


@dataclass
class PipelineOptions:
    """Options for the per-repository stage."""
    parallel: int = 8  # Maximum concurrent tasks
    policy: FailurePolicy = FailurePolicy.ISOLATE
    skip_clone: bool = False


class PipelineService:
    """
    Service that drives every stage of a run.

    Example:
        service = PipelineService(Workspace("/data"))
        options = PipelineOptions(parallel=4)

        for message in service.run(catalog, rules, options, RenderOptions(), EncodeOptions()):
            print(message)

        print(f"{service.last_summary.successful} repos rendered")
    """

    def __init__(
        self,
        workspace: Workspace,
        git_client: Optional[GitClient] = None,
        log_service: Optional[LogService] = None,
        merge_service: Optional[MergeService] = None,
        render_service: Optional[RenderService] = None
    ):
        self.workspace = workspace
        self.git = git_client or GitClient()
        self.logs = log_service or LogService(workspace)
        self.merge = merge_service or MergeService(workspace)
        self.renderer = render_service or RenderService()
        self.last_summary: Optional[PipelineSummary] = None
        self.last_decisions: List[Tuple[Repository, Verdict]] = []

    def select(self, catalog: List[Repository], rules: RuleSet) -> List[Repository]:
        """Return the repositories ``rules`` keep, in catalog order."""
        repos = list(catalog)
        self.last_decisions = rules.apply(repos)
        logger.debug(f"filtering removed {len(catalog) - len(repos)} repos")
        return repos

    def fetch_one(self, repo: Repository) -> str:
        """
        Clone or pull ``repo``'s working copy.

        Returns:
            "cloned" or "pulled"

        Raises:
            FetchError: git failed or could not be run
        """
        try:
            return self.git.clone_or_pull(repo.clone_url, self.workspace.repo_dir(repo))
        except (GourcersError, OSError) as e:
            raise FetchError(repo.full_name, e) from e

    def normalize_one(self, repo: Repository) -> Path:
        """Write ``repo``'s normalized log. Raises NormalizeError."""
        return self.logs.normalize_repo(repo)

    def run_task(self, repo: Repository, options: PipelineOptions) -> TaskResult:
        """Fetch then normalize one repository; failures become a FAILED result."""
        stage = TaskStage.FETCH
        try:
            fetched = "skipped" if options.skip_clone else self.fetch_one(repo)
            stage = TaskStage.NORMALIZE
            log_path = self.normalize_one(repo)
        except (FetchError, NormalizeError) as e:
            return TaskResult(repo=repo, status=TaskStatus.FAILED, stage=stage, error=str(e.cause))
        except (GourcersError, OSError) as e:
            logger.debug(f"{repo.full_name}: unexpected {type(e).__name__} during {stage.value}")
            return TaskResult(repo=repo, status=TaskStatus.FAILED, stage=stage, error=str(e))

        return TaskResult(
            repo=repo,
            status=TaskStatus.SUCCESS,
            stage=TaskStage.DONE,
            fetched=fetched,
            log_path=str(log_path),
        )

    def run_tasks(
        self,
        repos: List[Repository],
        options: PipelineOptions
    ) -> Generator[str, None, PipelineSummary]:
        """
        Run every repository's task and wait for all of them.

        Under ISOLATE a failure is reported and the other tasks carry on.
        Under ABORT the first failure cancels tasks that have not started;
        tasks already running still finish before this returns.

        Yields:
            Progress messages

        Returns:
            PipelineSummary with results in catalog order
        """
        summary = PipelineSummary(policy=options.policy)
        self.last_summary = summary

        if not repos:
            yield "No repositories to process"
            return summary

        self.workspace.ensure()
        aborted = threading.Event()

        def task(repo: Repository) -> TaskResult:
            if aborted.is_set():
                return _cancelled(repo)
            return self.run_task(repo, options)

        with ThreadPoolExecutor(max_workers=max(1, options.parallel)) as executor:
            futures = {executor.submit(task, repo): repo for repo in repos}

            for future in as_completed(futures):
                if future.cancelled():
                    result = _cancelled(futures[future])
                else:
                    result = future.result()
                summary.add_result(result)

                name = result.repo.full_name
                if result.status == TaskStatus.SUCCESS:
                    yield f"  ✓ {name}: {result.fetched}, log written"
                elif result.status == TaskStatus.CANCELLED:
                    yield f"  - {name}: cancelled"
                else:
                    if options.policy == FailurePolicy.ABORT:
                        logger.error(f"{name}: {result.stage.value} failed: {result.error}")
                        if not aborted.is_set():
                            aborted.set()
                            for pending in futures:
                                pending.cancel()
                    else:
                        logger.warning(f"{name}: {result.stage.value} failed, excluding it: {result.error}")
                    yield f"  ✗ {name}: {result.error}"

        # every task is terminal here
        summary.sort_by(repos)
        return summary

    def run(
        self,
        catalog: List[Repository],
        rules: RuleSet,
        options: PipelineOptions,
        render_options: RenderOptions,
        encode_options: Optional[EncodeOptions] = None
    ) -> Generator[str, None, PipelineSummary]:
        """
        Run every stage after the catalog has been fetched.

        Yields:
            Progress messages

        Returns:
            PipelineSummary of the per-repository stage

        Raises:
            EmptySelectionError: the rules kept nothing
            PipelineAbortedError: a task failed under ABORT, or every task failed
            MergeError, RenderError, EncodeError: fatal stage failures
        """
        repos = self.select(catalog, rules)
        yield f"Selected {len(repos)} of {len(catalog)} repositories"
        if not repos:
            raise EmptySelectionError("no repositories matched the selection rules")

        action = "Normalizing" if options.skip_clone else "Fetching and normalizing"
        yield f"{action} {len(repos)} repositories (parallel={options.parallel})..."
        summary = yield from self.run_tasks(repos, options)

        if options.policy == FailurePolicy.ABORT and not summary.success:
            raise PipelineAbortedError(summary.errors)
        if summary.successful == 0:
            raise PipelineAbortedError(summary.errors, reason="every repository failed")
        if summary.failed:
            yield f"Continuing without {summary.failed} failed repositories"

        yield "Combining and sorting logs..."
        sorted_log = self.merge.combine_and_sort(summary.succeeded_repos)

        if encode_options is None:
            yield "Rendering with gource..."
        else:
            yield f"Rendering video to {encode_options.output}..."
        self.renderer.render(sorted_log, render_options, encode_options)

        return summary


def _cancelled(repo: Repository) -> TaskResult:
    return TaskResult(
        repo=repo,
        status=TaskStatus.CANCELLED,
        stage=TaskStage.FETCH,
        error="cancelled after an earlier failure",
    )

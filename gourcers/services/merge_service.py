"""
Merge service for gourcers.

Combines every successful repository's normalized log into one
chronological log. Equivalent to:

    cat gource/*.txt | sort by the first '|' field | > sorted.txt

The sort is stable, so events sharing a timestamp keep the order in which
their logs were concatenated (catalog order).
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..domain.repository import Repository
from ..infra.errors import GourcersError, MergeError, ProcessFailedError, ToolMissingError
from ..infra.process import ProcessPipeline
from ..workspace import Workspace
from .log_service import write_atomic

logger = logging.getLogger(__name__)


def sort_key(line: str) -> Tuple[int, Union[int, str]]:
    """
    Key on the first ``|`` field.

    Unix timestamps compare numerically (so a 9-digit timestamp sorts
    before a 10-digit one); anything else falls back to text order after
    all numeric keys.
    """
    field = line.split('|', 1)[0].strip()
    if field.isdigit():
        return (0, int(field))
    return (1, field)


def sort_lines(lines: List[str]) -> List[str]:
    return sorted(lines, key=sort_key)


class MergeService:
    """
    Combines and sorts per-repository logs.

    Example:
        service = MergeService(Workspace("/data"))
        service.combine_and_sort(repos)  # writes /data/sorted.txt
    """

    def __init__(
        self,
        workspace: Workspace,
        external_sort: bool = False,
        qsv_binary: str = "qsv"
    ):
        """
        Args:
            workspace: Data directory layout
            external_sort: Sort with ``qsv sort | qsv fmt`` instead of in process
            qsv_binary: qsv executable name or path
        """
        self.workspace = workspace
        self.external_sort = external_sort
        self.qsv_binary = qsv_binary

    def read_logs(self, repos: List[Repository]) -> List[str]:
        """
        Read every repository's log in the given order.

        Raises:
            MergeError: a log is missing or unreadable
        """
        lines: List[str] = []
        for repo in repos:
            path = self.workspace.gource_log(repo)
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    text = f.read()
            except OSError as e:
                raise MergeError(f"failed to read gource log for {repo.full_name} ({path}): {e}") from e
            lines.extend(line for line in text.splitlines() if line.strip())
        return lines

    def combine_and_sort(self, repos: List[Repository], output: Optional[Path] = None) -> Path:
        """
        Write the combined, time-ordered log.

        Args:
            repos: Successfully processed repositories, in catalog order
            output: Destination (defaults to the workspace's sorted.txt);
                any previous version is replaced

        Returns:
            Path of the sorted log
        """
        output = Path(output) if output else self.workspace.sorted_log
        lines = self.read_logs(repos)
        logger.debug(f"combining {len(lines)} log lines from {len(repos)} repos")

        if self.external_sort:
            self._sort_external(lines, output)
        else:
            try:
                write_atomic(output, ''.join(f"{line}\n" for line in sort_lines(lines)))
            except OSError as e:
                raise MergeError(f"failed to write sorted log {output}: {e}") from e

        return output

    def _sort_external(self, lines: List[str], output: Path) -> None:
        try:
            output.unlink(missing_ok=True)
        except OSError as e:
            raise MergeError(f"failed to remove previous sorted log {output}: {e}") from e

        pipeline = ProcessPipeline(
            [self.qsv_binary, "sort", "--no-headers", "-d", "|", "-n", "-s", "1"],
            [self.qsv_binary, "fmt", "-t", "|", "-o", str(output)],
            producer_name="qsv sort",
            consumer_name="qsv fmt",
        )
        combined = ''.join(f"{line}\n" for line in lines).encode('utf-8')
        logger.debug(f"writing combined log to sort: {len(combined)} bytes")

        try:
            pipeline.run(input_data=combined)
        except ToolMissingError:
            raise
        except ProcessFailedError as e:
            raise MergeError(f"failed to sort combined log: {e}") from e
        except GourcersError as e:
            raise MergeError(str(e)) from e
